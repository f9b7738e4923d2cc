"""Shared monthly token budget.

The budget row is shared with the drafting assistant, which applies the same
read, compare and increment sequence against the same ceiling.
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from ..database import SupabaseClient
from ..errors import BudgetExceededError
from ..models import TokenBudget, period_start

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class TokenBudgetLedger:
    """Pre-checks and records model token usage against the monthly ceiling."""

    def __init__(
        self,
        db: SupabaseClient,
        default_monthly_limit: int = 500000,
        enforce: bool = True,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self._db = db
        self.default_monthly_limit = default_monthly_limit
        self.enforce = enforce
        self._today = today

    def current(self) -> TokenBudget:
        """Current period's budget row, provisioned on first use."""
        period = period_start(self._today())
        budget = self._db.get_token_budget(period)
        if budget is None:
            budget = self._db.create_token_budget(period, self.default_monthly_limit)
        return budget

    def ensure_available(self, estimated_tokens: int) -> None:
        """Raise BudgetExceededError if the next call could breach the ceiling."""
        if not self.enforce:
            return
        budget = self.current()
        if budget.would_exceed(estimated_tokens):
            raise BudgetExceededError(budget.tokens_used, estimated_tokens, budget.monthly_limit)

    def record_usage(self, tokens: int) -> Optional[int]:
        """Add actual usage to the shared counter; returns the new total."""
        if tokens <= 0:
            return None
        try:
            budget = self.current()
            new_total = budget.tokens_used + tokens
            self._db.set_tokens_used(budget.current_period_start, new_total)
        except Exception as exc:
            logger.error("Could not record %d tokens against shared budget: %s", tokens, exc)
            return None
        return new_total
