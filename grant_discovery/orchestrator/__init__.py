"""Top-level discovery sync driver."""

from .context import SyncContext
from .sync import SyncOrchestrator, SyncResult

__all__ = ["SyncContext", "SyncOrchestrator", "SyncResult"]
