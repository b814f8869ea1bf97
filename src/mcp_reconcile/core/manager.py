"""
High-level manager for presentation layers.

Wraps the reconciliation engine and the trash store, performs the
multi-step operations a user actually asks for (delete to trash, restore,
add to / remove from one source), and reports every outcome as an
OperationResult instead of raising.
"""

import functools
from typing import Callable, Dict, List, Optional

from mcp_reconcile.core.engine import ReconciliationEngine
from mcp_reconcile.core.exceptions import (
    LastSourceError,
    MCPReconcileError,
    SaveError,
    ServerNotFoundError,
    SourceUnavailableError,
    TrashEntryNotFoundError,
)
from mcp_reconcile.core.models import (
    AggregatedServer,
    OperationResult,
    Skill,
    SourceId,
    TrashEntry,
)
from mcp_reconcile.core.trash import TrashStore
from mcp_reconcile.utils.config import Config
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)


def reported(func: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
    """Turn expected failures raised by an operation into a failed result."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> OperationResult:
        try:
            return func(*args, **kwargs)
        except MCPReconcileError as e:
            logger.warning(f"{func.__name__} failed: {e}")
            return OperationResult(success=False, message=e.message, error_code=e.error_code)
        except OSError as e:
            logger.error(f"{func.__name__} failed with I/O error: {e}")
            return OperationResult(success=False, message=str(e), error_code="IO_ERROR")

    return wrapper


class ReconcileManager:
    """Entry point for the CLI and any other front end."""

    def __init__(self, engine: ReconciliationEngine, trash: TrashStore):
        self.engine = engine
        self.trash_store = trash

    @classmethod
    def from_config(cls, config: Config) -> "ReconcileManager":
        return cls(ReconciliationEngine.from_config(config), TrashStore(config.get_state_file()))

    # Reads

    def sources(self) -> List[SourceId]:
        return self.engine.available_sources

    def servers(self) -> Dict[str, AggregatedServer]:
        return self.engine.get_merged_view()

    def skills(self) -> Dict[str, Skill]:
        return self.engine.get_skills()

    def trash(self) -> Dict[str, TrashEntry]:
        return self.trash_store.get_trash()

    def refresh(self) -> None:
        """Re-read every source and the state file from disk."""
        self.engine.reload()
        self.trash_store.reload()

    def _require(self, name: str) -> AggregatedServer:
        server = self.engine.get_merged_view().get(name)
        if server is None:
            raise ServerNotFoundError(name)
        return server

    def _done(self, message: str, warnings: Optional[List[str]] = None) -> OperationResult:
        try:
            self.trash_store.mark_used()
        except SaveError as e:
            logger.warning(f"Could not record last use: {e}")
        self.refresh()
        return OperationResult(success=True, message=message, warnings=warnings or [])

    # Server operations

    @reported
    def toggle(self, name: str, source: SourceId) -> OperationResult:
        if not self.engine.toggle(name, source):
            raise ServerNotFoundError(name, source.value)
        state = "enabled" if self._require(name).enabled_in(source) else "disabled"
        return self._done(f"{name} {state} in {source.display_name}")

    @reported
    def set_enabled(self, name: str, source: SourceId, enabled: bool) -> OperationResult:
        if not self.engine.set_enabled(name, source, enabled):
            raise ServerNotFoundError(name, source.value)
        return self._done(f"{name} {'enabled' if enabled else 'disabled'} in {source.display_name}")

    @reported
    def remove_from_source(self, name: str, source: SourceId) -> OperationResult:
        """Drop ``name`` from one source, refusing if it is the last one."""
        server = self._require(name)
        if source not in server.sources:
            raise ServerNotFoundError(name, source.value)
        if len(server.sources) == 1:
            raise LastSourceError(name, source.value)
        self.engine.delete(name, source)
        return self._done(f"Removed {name} from {source.display_name}")

    @reported
    def add_to_source(self, name: str, source: SourceId) -> OperationResult:
        """Copy ``name`` into ``source`` from the first source defining it."""
        server = self._require(name)
        if source in server.sources:
            return OperationResult(success=True, message=f"{name} is already in {source.display_name}")
        self.engine.sync_one_to(name, server.source_ids[0], source)
        return self._done(f"Added {name} to {source.display_name}")

    @reported
    def sync_to(self, name: str, from_source: SourceId, to_source: SourceId) -> OperationResult:
        self.engine.sync_one_to(name, from_source, to_source)
        return self._done(f"Copied {name} from {from_source.display_name} to {to_source.display_name}")

    @reported
    def sync_all(self, name: str, source: Optional[SourceId] = None) -> OperationResult:
        written = self.engine.sync_all_from(name, source)
        if not written:
            return self._done(f"{name}: no other source to sync to")
        return self._done(f"Synced {name} to {', '.join(s.display_name for s in written)}")

    @reported
    def delete(self, name: str) -> OperationResult:
        """Remove ``name`` from every source and move it to the trash."""
        server = self._require(name)
        from_sources = server.source_ids
        entry = self.trash_store.move_to_trash(
            name, server.first_config(), [s.value for s in from_sources],
        )
        try:
            self.engine.delete(name)
        except MCPReconcileError:
            # Re-read disk and keep the trash record in line with what was really removed
            self.engine.reload()
            remaining = set(self.engine.sources_defining(name))
            removed = [s.value for s in from_sources if s not in remaining]
            if removed:
                self.trash_store.put_back(name, entry.model_copy(update={"from_sources": removed}))
            else:
                self.trash_store.restore_from_trash(name)
            raise
        return self._done(f"Moved {name} to trash")

    @reported
    def restore(self, name: str) -> OperationResult:
        """
        Put a trashed server back into the sources it was deleted from.

        Sources that are no longer available are skipped with a warning.
        If none of them is available the entry stays in the trash.
        """
        entry = self.trash_store.get_trash().get(name)
        if entry is None:
            raise TrashEntryNotFoundError(name)

        reachable = [s for s in entry.from_sources
                     if s in {a.value for a in self.engine.available_sources}]
        if not reachable:
            raise SourceUnavailableError(
                ", ".join(entry.from_sources) or "none",
                f"None of the sources {name} was deleted from is available",
            )

        entry = self.trash_store.restore_from_trash(name)
        try:
            restored, skipped = self.engine.restore_definition(name, entry.config, entry.from_sources)
        except MCPReconcileError:
            self.trash_store.put_back(name, entry)
            raise

        warnings = [f"Skipped unavailable source: {s}" for s in skipped]
        return self._done(
            f"Restored {name} to {', '.join(s.display_name for s in restored)}",
            warnings,
        )

    @reported
    def clear_trash(self) -> OperationResult:
        count = self.trash_store.clear_trash()
        return self._done(f"Emptied trash ({count} entries)")

    # Skill operations

    @reported
    def toggle_skill(self, key: str) -> OperationResult:
        if key not in self.engine.get_skills() or not self.engine.toggle_skill(key):
            raise MCPReconcileError(f"Skill '{key}' not found", error_code="SKILL_NOT_FOUND")
        skill = self.engine.get_skills()[key]
        return self._done(f"{skill.name} {'disabled' if skill.disabled else 'enabled'}")

    @reported
    def delete_skill(self, key: str) -> OperationResult:
        if not self.engine.delete_skill(key):
            raise MCPReconcileError(f"Skill '{key}' not found", error_code="SKILL_NOT_FOUND")
        return self._done(f"Deleted skill {key}")
