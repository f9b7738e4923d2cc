"""Scoring criteria weights.

Weights are percentages over the five scoring criteria and come from the
active org profile's ``profile_json.scoring_weights``.
"""

import logging
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError, field_validator

from ..models import CRITERIA, CriterionScores

logger = logging.getLogger(__name__)


class ScoringWeights(BaseModel):
    """Configurable weights for the five scoring criteria.

    All weights must sum to 100.
    """

    mission_alignment: float = 30
    geographic_eligibility: float = 20
    applicant_eligibility: float = 20
    award_size_fit: float = 15
    population_alignment: float = 15

    @field_validator(*CRITERIA)
    @classmethod
    def weight_range(cls, v: float) -> float:
        """Ensure weights are between 0 and 100."""
        if not 0 <= v <= 100:
            raise ValueError(f"Weight must be between 0 and 100, got {v}")
        return v

    def model_post_init(self, __context) -> None:
        """Validate that weights sum to 100."""
        total = sum(getattr(self, name) for name in CRITERIA)
        if abs(total - 100) > 0.01:
            raise ValueError(
                f"Weights must sum to 100, got {total:.2f}. "
                f"(MA:{self.mission_alignment}, GE:{self.geographic_eligibility}, "
                f"AE:{self.applicant_eligibility}, AS:{self.award_size_fit}, "
                f"PA:{self.population_alignment})"
            )

    def weighted_score(self, scores: CriterionScores) -> float:
        """Weighted 0-10 score from per-criterion scores."""
        total = sum(getattr(scores, name) * getattr(self, name) for name in CRITERIA)
        return round(total / 100, 2)


DEFAULT_WEIGHTS = ScoringWeights()


def weights_from_profile(raw: Optional[Mapping[str, float]]) -> ScoringWeights:
    """Build weights from a profile's scoring_weights, falling back to defaults."""
    if not raw:
        return DEFAULT_WEIGHTS
    try:
        return ScoringWeights(**{name: raw[name] for name in CRITERIA if name in raw})
    except (ValidationError, ValueError) as exc:
        logger.warning("Invalid profile scoring_weights, using defaults: %s", exc)
        return DEFAULT_WEIGHTS
