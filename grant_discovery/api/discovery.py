"""Discovery sync and cancellation routes."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from ..ledger import request_cancellation
from ..models import RunStatus, TriggerSource
from ..orchestrator import SyncContext, SyncOrchestrator, SyncResult
from .deps import get_context, require_cron_secret, require_operator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/discovery", tags=["Discovery"])


def _respond(result: SyncResult) -> Any:
    if result.status == RunStatus.FAILED:
        fatal = result.stats.error_log[0].error if result.stats.error_log else "Run failed"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": fatal, "run_id": result.run_id},
        )
    return result.to_response()


@router.get("/sync", dependencies=[Depends(require_cron_secret)])
async def scheduled_sync(context: SyncContext = Depends(get_context)):
    """Scheduled daily run."""
    result = await SyncOrchestrator(context).run(TriggerSource.SCHEDULED)
    return _respond(result)


@router.post("/sync")
async def manual_sync(
    operator_id: str = Depends(require_operator),
    context: SyncContext = Depends(get_context),
):
    """Operator-triggered run."""
    logger.info("Manual discovery run requested by %s", operator_id)
    result = await SyncOrchestrator(context).run(TriggerSource.MANUAL, triggered_by_user=operator_id)
    return _respond(result)


@router.post("/cancel")
async def cancel_run(
    operator_id: str = Depends(require_operator),
    context: SyncContext = Depends(get_context),
) -> Dict[str, str]:
    """Signal the most recent active run to stop."""
    outcome = request_cancellation(context.db)
    if outcome is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active discovery run")
    run_id, new_status = outcome
    logger.info("Operator %s moved run %s to %s", operator_id, run_id, new_status.value)
    return {"run_id": run_id, "status": new_status.value}
