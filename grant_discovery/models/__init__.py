"""Shared Pydantic models for the discovery sync pipeline."""

from .discovery_query import DiscoveryQuery
from .discovery_run import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    DiscoveryRun,
    ErrorEntry,
    RunStats,
    RunStatus,
    TriggerSource,
)
from .opportunity import REVIEW_QUEUE_STATUS, DiscoveredOpportunity, ExtractedFields
from .org_profile import OrgProfile
from .scoring_result import CRITERIA, CriterionScores, ScoringResult
from .token_budget import TokenBudget, period_start

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "CRITERIA",
    "CriterionScores",
    "DiscoveredOpportunity",
    "DiscoveryQuery",
    "DiscoveryRun",
    "ErrorEntry",
    "ExtractedFields",
    "OrgProfile",
    "REVIEW_QUEUE_STATUS",
    "RunStats",
    "RunStatus",
    "ScoringResult",
    "TokenBudget",
    "TriggerSource",
    "period_start",
]
