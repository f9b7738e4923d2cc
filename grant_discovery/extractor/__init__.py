"""Extraction stage (cheap model tier)."""

from .engine import ExtractionStage

__all__ = ["ExtractionStage"]
