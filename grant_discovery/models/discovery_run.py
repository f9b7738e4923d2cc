"""DiscoveryRun - per-invocation audit record (the run ledger)."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from ..errors import ErrorKind


class RunStatus(str, Enum):
    RUNNING = "running"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = (RunStatus.RUNNING, RunStatus.CANCELLING)
TERMINAL_STATUSES = (RunStatus.CANCELLED, RunStatus.COMPLETED, RunStatus.FAILED)


class TriggerSource(str, Enum):
    SCHEDULED = "cron"
    MANUAL = "manual"


class ErrorEntry(BaseModel):
    """One structured error-log entry."""

    kind: ErrorKind
    label: str = Field(..., description="Query label, '<stage>:<external_id>' or 'fatal'")
    error: str
    external_id: Optional[str] = None
    reason: Optional[str] = Field(None, description="Sub-kind, e.g. no_object / malformed / schema")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RunStats(BaseModel):
    """Per-stage counters, token totals and the error log for one run."""

    opportunities_fetched: int = 0
    opportunities_deduplicated: int = 0
    opportunities_detail_fetched: int = 0
    opportunities_auto_rejected: int = 0
    opportunities_prescreen_rejected: int = 0
    opportunities_below_threshold: int = 0
    opportunities_inserted: int = 0
    tokens_haiku: int = 0
    tokens_sonnet: int = 0
    error_log: list[ErrorEntry] = Field(default_factory=list)

    def errors_of_kind(self, kind: ErrorKind) -> list[ErrorEntry]:
        return [entry for entry in self.error_log if entry.kind == kind]

    def counters(self) -> dict[str, int]:
        return self.model_dump(exclude={"error_log"})

    def to_record(self) -> dict[str, Any]:
        """Columns for the discovery_runs row; empty error log is stored as null."""
        record: dict[str, Any] = self.counters()
        record["error_log"] = (
            [entry.model_dump(mode="json") for entry in self.error_log] if self.error_log else None
        )
        return record


class DiscoveryRun(BaseModel):
    """A discovery_runs row."""

    id: str
    status: RunStatus = RunStatus.RUNNING
    triggered_by: TriggerSource = TriggerSource.SCHEDULED
    triggered_by_user: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    org_profile_id: Optional[str] = None
