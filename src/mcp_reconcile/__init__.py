"""
MCP Reconcile - keep MCP server definitions in sync across CLI tools.

Loads the MCP server configuration of every supported CLI tool, presents
one merged view of them, and copies, toggles, deletes and restores
definitions across the tools' own configuration files.
"""

__version__ = "1.0.0"
__description__ = "Reconcile MCP server definitions across CLI tools"

# Public API
from mcp_reconcile.core.exceptions import MCPReconcileError
from mcp_reconcile.core.models import AggregatedServer, SourceId, TrashEntry

__all__ = [
    "__version__",
    "__description__",
    "MCPReconcileError",
    "AggregatedServer",
    "SourceId",
    "TrashEntry",
]
