"""Run ledger: the audit record for one pipeline invocation.

Counters and the structured error log accumulate in memory and are written to
the discovery_runs row at checkpoints and, exactly once, at finalization.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from postgrest.exceptions import APIError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..database import SupabaseClient
from ..errors import DiscoveryError, ErrorKind, RunLedgerError
from ..llm.client import ModelTier
from ..models import ErrorEntry, RunStats, RunStatus, TriggerSource

logger = logging.getLogger(__name__)

DEFAULT_FINALIZE_WAIT = wait_exponential(multiplier=1, min=1, max=10)


class RunLedger:
    """Accumulates one run's counters and writes them to discovery_runs."""

    def __init__(
        self,
        db: SupabaseClient,
        run_id: str,
        finalize_wait: wait_base = DEFAULT_FINALIZE_WAIT,
    ) -> None:
        self._db = db
        self.run_id = run_id
        self.stats = RunStats()
        self.status = RunStatus.RUNNING
        self._finalize_wait = finalize_wait
        self._finalized = False

    @classmethod
    def open(
        cls,
        db: SupabaseClient,
        triggered_by: TriggerSource,
        triggered_by_user: Optional[str] = None,
        **kwargs: Any,
    ) -> "RunLedger":
        """Create the run row in 'running' state."""
        run_id = db.create_run(triggered_by, triggered_by_user)
        return cls(db, run_id, **kwargs)

    @property
    def finalized(self) -> bool:
        return self._finalized

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def record_error(
        self,
        kind: ErrorKind,
        label: str,
        error: str,
        external_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> ErrorEntry:
        entry = ErrorEntry(kind=kind, label=label, error=error, external_id=external_id, reason=reason)
        self.stats.error_log.append(entry)
        logger.warning(
            "run_error run_id=%s kind=%s label=%s reason=%s error=%s",
            self.run_id, kind.value, label, reason, error,
        )
        return entry

    def record_exception(
        self,
        exc: DiscoveryError,
        label: str,
        external_id: Optional[str] = None,
    ) -> ErrorEntry:
        return self.record_error(exc.kind, label, str(exc), external_id=external_id, reason=exc.reason)

    def add_tokens(self, tier: ModelTier, tokens: int) -> None:
        if tier == ModelTier.CHEAP:
            self.stats.tokens_haiku += tokens
        else:
            self.stats.tokens_sonnet += tokens

    def checkpoint(self) -> None:
        """Write live counters. A failed checkpoint never stops the run."""
        try:
            self._db.update_run(self.run_id, self.stats.counters())
        except Exception as exc:
            logger.warning("Checkpoint failed for run %s: %s", self.run_id, exc)

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def finalize(self, status: RunStatus, org_profile_id: Optional[str] = None) -> RunStats:
        """Write the terminal row with all counters. Callable once."""
        fields: Dict[str, Any] = {**self.stats.to_record(), "status": status.value}
        if org_profile_id:
            fields["org_profile_id"] = org_profile_id
        self._write_terminal(status, fields)
        return self.stats

    def fail(self, exc: Exception) -> RunStats:
        """Mark the run failed with a single fatal entry instead of partial counters."""
        entry = ErrorEntry(kind=ErrorKind.FATAL, label="fatal", error=str(exc))
        self.stats.error_log = [entry]
        logger.error("Discovery run %s failed: %s", self.run_id, exc)
        self._write_terminal(
            RunStatus.FAILED,
            {"status": RunStatus.FAILED.value, "error_log": [entry.model_dump(mode="json")]},
        )
        return self.stats

    def _write_terminal(self, status: RunStatus, fields: Dict[str, Any]) -> None:
        if self._finalized:
            raise RunLedgerError(f"Run {self.run_id} already finalized as {self.status.value}")
        fields["completed_at"] = datetime.now(timezone.utc).isoformat()

        for attempt in Retrying(
            stop=stop_after_attempt(3),
            wait=self._finalize_wait,
            retry=retry_if_exception_type((httpx.HTTPError, APIError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                self._db.update_run(self.run_id, fields)

        self._finalized = True
        self.status = status
        logger.info(
            "run_finalized run_id=%s status=%s inserted=%d errors=%d",
            self.run_id, status.value, self.stats.opportunities_inserted, len(self.stats.error_log),
        )
