"""Weighted fit-for-mission scoring (capable model tier)."""

from .engine import ScoringStage
from .weights import DEFAULT_WEIGHTS, ScoringWeights, weights_from_profile

__all__ = ["DEFAULT_WEIGHTS", "ScoringStage", "ScoringWeights", "weights_from_profile"]
