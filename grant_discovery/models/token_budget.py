"""TokenBudget - shared monthly token ceiling (also consumed by the drafting assistant)."""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


def period_start(today: date) -> date:
    """First day of the calendar month containing ``today``."""
    return today.replace(day=1)


class TokenBudget(BaseModel):
    id: Optional[str] = None
    current_period_start: date
    monthly_limit: int = Field(default=500000, ge=0)
    tokens_used: int = Field(default=0, ge=0)

    @property
    def remaining(self) -> int:
        return max(0, self.monthly_limit - self.tokens_used)

    def would_exceed(self, estimated_tokens: int) -> bool:
        return self.tokens_used + estimated_tokens > self.monthly_limit
