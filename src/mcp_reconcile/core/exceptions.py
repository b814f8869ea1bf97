"""
Exception classes for MCP Reconcile.

Defines the exception hierarchy for failures that can occur while loading,
reconciling and persisting MCP server definitions.
"""

from typing import Any, Dict, Optional


class MCPReconcileError(Exception):
    """Base exception for all MCP Reconcile errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize MCPReconcileError.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """String representation of the error."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigLoadError(MCPReconcileError):
    """A source, registry or state file could not be read or parsed."""
    pass


class SaveError(MCPReconcileError):
    """Writing a configuration document to disk failed."""
    pass


class SourceUnavailableError(MCPReconcileError):
    """The requested source was not detected at load time."""

    def __init__(self, source: str, message: Optional[str] = None):
        super().__init__(
            message or f"Source '{source}' is not available",
            error_code="SOURCE_UNAVAILABLE",
            details={"source": source},
        )
        self.source = source


class ServerNotFoundError(MCPReconcileError):
    """A server name is absent from a specific source."""

    def __init__(self, name: str, source: Optional[str] = None):
        where = f" in '{source}'" if source else ""
        super().__init__(
            f"Server '{name}' not found{where}",
            error_code="SERVER_NOT_FOUND",
            details={"name": name, "source": source},
        )
        self.name = name
        self.source = source


class DefinitionNotFoundError(MCPReconcileError):
    """No available source defines the server name."""

    def __init__(self, name: str):
        super().__init__(
            f"No definition found for '{name}' in any source",
            error_code="NO_DEFINITION",
            details={"name": name},
        )
        self.name = name


class TrashEntryNotFoundError(MCPReconcileError):
    """The server name is not in the trash."""

    def __init__(self, name: str):
        super().__init__(
            f"'{name}' is not in the trash",
            error_code="TRASH_NOT_FOUND",
            details={"name": name},
        )
        self.name = name


class QueryTimeoutError(MCPReconcileError):
    """An introspection query did not settle before its deadline."""

    def __init__(self, seconds: float):
        super().__init__(
            f"Connection timed out ({seconds:g}s)",
            error_code="QUERY_TIMEOUT",
            details={"timeout_seconds": seconds},
        )
        self.seconds = seconds


class LastSourceError(MCPReconcileError):
    """Removing the server from this source would leave it defined nowhere."""

    def __init__(self, name: str, source: str):
        super().__init__(
            f"'{source}' is the last source defining '{name}'; delete it to move it to the trash",
            error_code="LAST_SOURCE",
            details={"name": name, "source": source},
        )
        self.name = name
        self.source = source
