"""Typed error taxonomy for the discovery sync pipeline.

Every failure the orchestrator records in a run's error log originates as one
of these exceptions, so the log can be filtered by ``ErrorKind`` instead of by
string matching on messages.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Category stored in each run error-log entry."""

    FATAL = "fatal"
    QUERY_FETCH = "query_fetch"
    DETAIL_FETCH = "detail_fetch"
    EXTRACTION = "extraction"
    SCORING = "scoring"
    MODEL_CALL = "model_call"
    INSERTION = "insertion"
    BUDGET = "budget"
    DEADLINE = "deadline"
    LEDGER = "ledger"
    UNEXPECTED = "unexpected"


class DiscoveryError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason


# ---------------------------------------------------------------------------
# Configuration failures (abort the run)
# ---------------------------------------------------------------------------

class ConfigurationError(DiscoveryError):
    kind = ErrorKind.FATAL


class NoActiveProfileError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No active org profile found")


class NoEnabledQueriesError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No enabled discovery queries found")


# ---------------------------------------------------------------------------
# Registry failures
# ---------------------------------------------------------------------------

class RegistryError(DiscoveryError):
    """Failure talking to the grants registry."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchFetchError(RegistryError):
    kind = ErrorKind.QUERY_FETCH


class DetailFetchError(RegistryError):
    kind = ErrorKind.DETAIL_FETCH


# ---------------------------------------------------------------------------
# Model output parsing
# ---------------------------------------------------------------------------

class JsonExtractionError(ValueError):
    """Model text did not yield a JSON object."""

    reason = "unknown"


class NoJsonObjectError(JsonExtractionError):
    reason = "no_object"


class MalformedJsonError(JsonExtractionError):
    reason = "malformed"


class ExtractionError(DiscoveryError):
    kind = ErrorKind.EXTRACTION


class ScoringError(DiscoveryError):
    kind = ErrorKind.SCORING


class ModelCallError(DiscoveryError):
    """Transport or API failure from the language-model provider."""

    kind = ErrorKind.MODEL_CALL


class BudgetExceededError(DiscoveryError):
    """The shared monthly token ceiling would be exceeded by the next call."""

    kind = ErrorKind.BUDGET

    def __init__(self, tokens_used: int, estimated: int, monthly_limit: int) -> None:
        super().__init__(
            f"Monthly token budget exceeded: used={tokens_used} "
            f"estimated={estimated} limit={monthly_limit}"
        )
        self.tokens_used = tokens_used
        self.estimated = estimated
        self.monthly_limit = monthly_limit


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class InsertionError(DiscoveryError):
    kind = ErrorKind.INSERTION


class DuplicateOpportunityError(InsertionError):
    def __init__(self, source: str, external_id: str) -> None:
        super().__init__(
            f"Opportunity already exists for source={source} external_id={external_id}",
            reason="duplicate",
        )
        self.source = source
        self.external_id = external_id


class RunLedgerError(DiscoveryError):
    kind = ErrorKind.LEDGER
