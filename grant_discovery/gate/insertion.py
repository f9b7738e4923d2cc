"""Threshold gate and review-queue insertion."""

import logging
from enum import Enum

from ..adapters import BaseAdapter
from ..database import SupabaseClient
from ..models import DiscoveredOpportunity, ExtractedFields, ScoringResult

logger = logging.getLogger(__name__)

DEFAULT_SCORE_THRESHOLD = 5.0


class GateDecision(str, Enum):
    INSERT = "insert"
    AUTO_REJECTED = "auto_rejected"
    BELOW_THRESHOLD = "below_threshold"


class ThresholdGate:
    """Admits scored opportunities whose weighted score meets the floor.

    Below-floor results are discarded, not persisted, so lowering the floor
    later cannot surface them; they must be rediscovered.
    """

    def __init__(self, threshold: float = DEFAULT_SCORE_THRESHOLD) -> None:
        self.threshold = threshold

    def decide(self, score: ScoringResult) -> GateDecision:
        if score.auto_rejected:
            return GateDecision.AUTO_REJECTED
        if score.weighted_score < self.threshold:
            return GateDecision.BELOW_THRESHOLD
        return GateDecision.INSERT


class OpportunityWriter:
    """Writes admitted opportunities with provenance flags and review-queue status."""

    def __init__(self, db: SupabaseClient, adapter: BaseAdapter) -> None:
        self._db = db
        self._adapter = adapter

    @property
    def source(self) -> str:
        return self._adapter.source_name

    def build(self, external_id: str, fields: ExtractedFields, score: ScoringResult) -> DiscoveredOpportunity:
        return DiscoveredOpportunity(
            source=self.source,
            external_id=external_id,
            external_url=self._adapter.external_url(external_id),
            extracted=fields,
            score=score,
        )

    def insert(self, external_id: str, fields: ExtractedFields, score: ScoringResult) -> DiscoveredOpportunity:
        """Insert one opportunity.

        Raises:
            DuplicateOpportunityError: a concurrent run already inserted it.
            InsertionError: any other database rejection.
        """
        opportunity = self.build(external_id, fields, score)
        self._db.insert_opportunity(opportunity.to_record())
        logger.info(
            "Admitted %s:%s score=%.1f action=%s",
            self.source, external_id, score.weighted_score, score.recommended_action,
        )
        return opportunity
