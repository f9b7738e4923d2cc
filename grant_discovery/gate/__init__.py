"""Threshold gate and review-queue insertion."""

from .insertion import DEFAULT_SCORE_THRESHOLD, GateDecision, OpportunityWriter, ThresholdGate

__all__ = ["DEFAULT_SCORE_THRESHOLD", "GateDecision", "OpportunityWriter", "ThresholdGate"]
