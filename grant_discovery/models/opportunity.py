"""Opportunity models: normalized extraction output and the review-queue row."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from .scoring_result import ScoringResult

logger = logging.getLogger(__name__)

REVIEW_QUEUE_STATUS = "grant_discovered"


class ExtractedFields(BaseModel):
    """Normalized fields produced by the extraction stage.

    The raw registry record is upstream-controlled; everything downstream of the
    extraction stage only ever sees this schema.
    """

    name: str = Field(..., min_length=1, description="Opportunity title")
    funder: Optional[str] = Field(None, description="Agency name")
    grant_type: str = Field(default="federal", description="Grant type label")
    description: Optional[str] = Field(None, description="Short description")
    amount_requested: Optional[float] = Field(None, description="Always null for discovered grants")
    amount_max: Optional[float] = Field(None, description="Award ceiling in USD")
    primary_deadline: Optional[date] = Field(None, description="Close date")
    loi_deadline: Optional[date] = Field(None, description="Always null for discovered grants")
    eligibility_notes: Optional[str] = Field(None, description="Applicant types and restrictions")
    cfda_number: Optional[str] = Field(None, description="Assistance listing number")

    @field_validator("amount_max", "amount_requested", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Optional[float]:
        """Accept numbers or currency strings like "$25,000"."""
        if value is None or value == "":
            return None
        if isinstance(value, str):
            cleaned = value.replace("$", "").replace(",", "").strip()
            if cleaned.lower() in ("", "null", "none", "n/a"):
                return None
            return float(cleaned)
        return value

    @field_validator("primary_deadline", "loi_deadline", mode="before")
    @classmethod
    def parse_deadline(cls, value: Any) -> Optional[date]:
        if value is None or isinstance(value, date):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        text = value.strip()
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            try:
                return datetime.strptime(text, "%m/%d/%Y").date()
            except ValueError:
                logger.warning("Could not parse deadline: %s", text)
                return None


class DiscoveredOpportunity(BaseModel):
    """A scored opportunity admitted into the review queue."""

    source: str = Field(..., description="Origin registry name")
    external_id: str = Field(..., description="Registry's opaque identifier")
    external_url: str = Field(..., description="Canonical registry URL")
    extracted: ExtractedFields
    score: ScoringResult
    discovered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.source, self.external_id)

    def to_record(self) -> dict[str, Any]:
        """Row for the opportunities table."""
        f = self.extracted
        return {
            "type_id": "grant",
            "name": f.name,
            "funder": f.funder,
            "grant_type": f.grant_type,
            "description": f.description,
            "amount_max": f.amount_max,
            "primary_deadline": f.primary_deadline.isoformat() if f.primary_deadline else None,
            "loi_deadline": None,
            "eligibility_notes": f.eligibility_notes,
            "cfda_number": f.cfda_number,
            "status": REVIEW_QUEUE_STATUS,
            "source": self.source,
            "external_id": self.external_id,
            "external_url": self.external_url,
            "ai_match_score": self.score.weighted_score,
            "ai_match_rationale": self.score.rationale,
            "ai_score_detail": self.score.model_dump(mode="json"),
            "auto_discovered": True,
            "discovered_at": self.discovered_at.isoformat(),
        }
