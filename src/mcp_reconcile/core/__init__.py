"""Core reconciliation functionality."""

from mcp_reconcile.core.engine import ReconciliationEngine
from mcp_reconcile.core.exceptions import MCPReconcileError
from mcp_reconcile.core.manager import ReconcileManager
from mcp_reconcile.core.models import AggregatedServer, OperationResult, SourceId
from mcp_reconcile.core.trash import TrashStore

__all__ = [
    "ReconciliationEngine",
    "MCPReconcileError",
    "ReconcileManager",
    "AggregatedServer",
    "OperationResult",
    "SourceId",
    "TrashStore",
]
