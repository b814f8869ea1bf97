"""Utility modules for MCP Reconcile."""

from mcp_reconcile.utils.logging import get_logger, setup_logging
from mcp_reconcile.utils.config import Config, get_config

__all__ = [
    "get_logger",
    "setup_logging",
    "Config",
    "get_config",
]
