"""Deterministic pre-screen applied to extracted fields before scoring.

This gate only bounds spend on the capable model tier. The organization's real
eligibility logic lives in the profile prompt used by the scoring stage.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import ExtractedFields

DEFAULT_MIN_AWARD_CEILING = 5000.0


class PreScreenCheck(BaseModel):
    """Outcome of a single pre-screen rule."""

    constraint_name: str
    is_met: bool
    details: str = Field(default="")


def _check_award_ceiling(fields: ExtractedFields, min_award_ceiling: float) -> PreScreenCheck:
    """Reject awards whose ceiling is below the absolute floor. Unknown ceilings pass."""
    if fields.amount_max is not None and fields.amount_max < min_award_ceiling:
        return PreScreenCheck(
            constraint_name="Award Ceiling",
            is_met=False,
            details=(
                f"Award ceiling ${fields.amount_max:,.0f} is below minimum "
                f"${min_award_ceiling:,.0f}"
            ),
        )
    return PreScreenCheck(constraint_name="Award Ceiling", is_met=True, details="No ceiling below floor")


def run_checks(
    fields: ExtractedFields,
    min_award_ceiling: float = DEFAULT_MIN_AWARD_CEILING,
) -> List[PreScreenCheck]:
    return [_check_award_ceiling(fields, min_award_ceiling)]


def prescreen(
    fields: ExtractedFields,
    min_award_ceiling: float = DEFAULT_MIN_AWARD_CEILING,
) -> Optional[str]:
    """Return a rejection reason, or None if the opportunity may be scored."""
    for check in run_checks(fields, min_award_ceiling):
        if not check.is_met:
            return f"{check.constraint_name}: {check.details}"
    return None
