"""ScoringResult - structured output of the scoring stage."""

from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator

CRITERIA = (
    "mission_alignment",
    "geographic_eligibility",
    "applicant_eligibility",
    "award_size_fit",
    "population_alignment",
)


class CriterionScores(BaseModel):
    """Per-criterion scores, each 1-10 (0 only on auto-reject)."""

    mission_alignment: float = Field(..., ge=0, le=10)
    geographic_eligibility: float = Field(..., ge=0, le=10)
    applicant_eligibility: float = Field(..., ge=0, le=10)
    award_size_fit: float = Field(..., ge=0, le=10)
    population_alignment: float = Field(..., ge=0, le=10)


class ScoringResult(BaseModel):
    """Fit-for-mission rating of one opportunity against the active org profile."""

    scores: CriterionScores
    weighted_score: float = Field(..., ge=0, le=10, description="Weighted overall score")
    auto_rejected: bool = Field(default=False)
    auto_reject_reason: Optional[str] = Field(None)
    rationale: str = Field(default="", description="Plain-English summary of fit")
    red_flags: list[str] = Field(default_factory=list)
    recommended_action: Literal["apply", "investigate", "skip"] = Field(default="skip")
    weighted_score_check: Optional[float] = Field(
        None, description="Weighted score recomputed from the profile weights"
    )

    @model_validator(mode="after")
    def criteria_in_range(self) -> "ScoringResult":
        if self.auto_rejected:
            return self
        low = [name for name in CRITERIA if getattr(self.scores, name) < 1]
        if low:
            raise ValueError(f"Criterion scores below 1 without auto-reject: {', '.join(low)}")
        return self
