"""Live MCP server introspection."""

from mcp_reconcile.introspection.cache import IntrospectionCache, QueryToken
from mcp_reconcile.introspection.client import QUERY_TIMEOUT_SECONDS, query_server
from mcp_reconcile.introspection.models import (
    CapabilityDescriptor,
    Failed,
    IntrospectionResult,
    Pending,
    RemoteSkipped,
    Succeeded,
)

__all__ = [
    "IntrospectionCache",
    "QueryToken",
    "QUERY_TIMEOUT_SECONDS",
    "query_server",
    "CapabilityDescriptor",
    "Failed",
    "IntrospectionResult",
    "Pending",
    "RemoteSkipped",
    "Succeeded",
]
