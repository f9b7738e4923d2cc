"""Cost-bounding pre-screen for extracted opportunities."""

from .prescreen import DEFAULT_MIN_AWARD_CEILING, PreScreenCheck, prescreen, run_checks

__all__ = ["DEFAULT_MIN_AWARD_CEILING", "PreScreenCheck", "prescreen", "run_checks"]
