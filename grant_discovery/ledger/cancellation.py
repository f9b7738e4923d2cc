"""Cooperative cancellation.

Operators never interrupt a run directly. They move its ledger row to
'cancelling'; the orchestrator polls the row between candidates and stops at
the next checkpoint.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from ..database import SupabaseClient
from ..models import RunStatus

logger = logging.getLogger(__name__)

STOP_STATUSES = (RunStatus.CANCELLING, RunStatus.CANCELLED)


class CancellationMonitor:
    """Re-reads a run's own status before each candidate."""

    def __init__(self, db: SupabaseClient, run_id: str) -> None:
        self._db = db
        self.run_id = run_id

    def should_stop(self) -> bool:
        try:
            status = self._db.get_run_status(self.run_id)
        except Exception as exc:
            logger.warning("Could not read status for run %s, continuing: %s", self.run_id, exc)
            return False
        if status in STOP_STATUSES:
            logger.info("Cancellation signal observed for run %s (status=%s)", self.run_id, status.value)
            return True
        return False


def request_cancellation(db: SupabaseClient) -> Optional[Tuple[str, RunStatus]]:
    """Advance the most recent active run toward cancellation.

    First request: running -> cancelling (the orchestrator finishes its current
    candidate and writes 'cancelled' itself). Repeated request: cancelling ->
    cancelled, forced, for a run whose orchestrator already stopped without
    seeing the signal.

    Returns:
        (run_id, new_status), or None when no run is active.
    """
    run = db.find_active_run()
    if run is None:
        return None

    if run.status == RunStatus.RUNNING:
        new_status = RunStatus.CANCELLING
        fields = {"status": new_status.value}
    else:
        new_status = RunStatus.CANCELLED
        fields = {"status": new_status.value, "completed_at": datetime.now(timezone.utc).isoformat()}

    db.update_run(run.id, fields)
    logger.info("Run %s moved %s -> %s", run.id, run.status.value, new_status.value)
    return run.id, new_status
