"""Run ledger, shared token budget and cancellation signalling."""

from .budget import TokenBudgetLedger
from .cancellation import CancellationMonitor, request_cancellation
from .run_ledger import RunLedger

__all__ = ["CancellationMonitor", "RunLedger", "TokenBudgetLedger", "request_cancellation"]
