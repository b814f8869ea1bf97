"""
Reconciliation engine.

Loads every detected source, merges their server maps by name, and fans
mutations out to the source files that need them. The engine is a plain
object owned by its caller; reload() is the only way its state changes
other than through the mutation methods.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from mcp_reconcile.core.backup import BackupRotator
from mcp_reconcile.core.exceptions import (
    ConfigLoadError,
    DefinitionNotFoundError,
    SaveError,
    ServerNotFoundError,
    SourceUnavailableError,
)
from mcp_reconcile.core.models import (
    AggregatedServer,
    Skill,
    SourceId,
    SourcePresence,
    SourceSpec,
)
from mcp_reconcile.core.sources import SourceStore
from mcp_reconcile.utils.config import Config
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)

# The source whose registry carries plugins/skills
SKILLS_SOURCE = SourceId.CLAUDE


class ReconciliationEngine:
    """Merged, name-keyed view over all detected source stores."""

    def __init__(self, specs: Iterable[SourceSpec], rotator: BackupRotator, autoload: bool = True):
        """
        Initialize reconciliation engine.

        Args:
            specs: Known sources, in detection order
            rotator: Backup rotator used before every write
            autoload: Load the sources immediately
        """
        self.specs: List[SourceSpec] = list(specs)
        self.rotator = rotator
        self.stores: Dict[SourceId, SourceStore] = {}
        self.load_errors: Dict[SourceId, str] = {}
        if autoload:
            self.load()

    @classmethod
    def from_config(cls, config: Config) -> "ReconciliationEngine":
        rotator = BackupRotator(config.get_backup_dir(), keep=config.backup_keep)
        return cls(config.source_specs(), rotator)

    # Loading

    def load(self) -> None:
        """Detect and load every source whose configuration file exists."""
        for spec in self.specs:
            if not spec.config_path.exists():
                logger.debug(f"{spec.source.value} not detected at {spec.config_path}")
                continue
            try:
                self.stores[spec.source] = SourceStore.load(spec)
                logger.debug(f"Loaded {spec.source.value} config from {spec.config_path}")
            except ConfigLoadError as e:
                self.load_errors[spec.source] = e.message
                logger.error(f"Failed to load {spec.source.value} config: {e.message}")

        logger.info(
            f"Detected sources: {[s.value for s in self.available_sources] or 'none'}",
            extra={"failed_sources": [s.value for s in self.load_errors]},
        )

    def reload(self) -> None:
        """Discard in-memory state and re-read every source from disk."""
        self.stores = {}
        self.load_errors = {}
        self.load()

    @property
    def available_sources(self) -> List[SourceId]:
        return [spec.source for spec in self.specs if spec.source in self.stores]

    def is_available(self, source: SourceId) -> bool:
        return source in self.stores

    def _store(self, source: SourceId) -> SourceStore:
        store = self.stores.get(source)
        if store is None:
            raise SourceUnavailableError(source.value)
        return store

    # Reads

    def get_merged_view(self) -> Dict[str, AggregatedServer]:
        """Every server name across all sources, with per-source presence."""
        merged: Dict[str, AggregatedServer] = {}
        for source in self.available_sources:
            for name, config in self.stores[source].servers.items():
                entry = merged.setdefault(name, AggregatedServer(name=name))
                entry.sources[source] = SourcePresence(
                    enabled=not (isinstance(config, dict) and config.get("disabled")),
                    config=config,
                )
        return merged

    def sources_defining(self, name: str) -> List[SourceId]:
        return [s for s in self.available_sources if name in self.stores[s].servers]

    def get_skills(self) -> Dict[str, Skill]:
        """Skills from the registry; only the first instance of each key counts."""
        store = self.stores.get(SKILLS_SOURCE)
        if store is None:
            return {}
        skills = {}
        for key, instances in store.plugins.items():
            if not (isinstance(instances, list) and instances and isinstance(instances[0], dict)):
                continue
            try:
                skills[key] = Skill.from_instance(key, instances[0])
            except ValidationError as e:
                logger.warning(f"Ignoring malformed skill entry '{key}': {e}")
        return skills

    # Persistence

    def save(self, source: SourceId) -> None:
        """
        Persist one source, backing up the previous file first.

        Raises:
            SourceUnavailableError: If the source was never loaded
            SaveError: If the write fails
        """
        self._store(source).save(self.rotator)

    def save_registry(self) -> None:
        store = self.stores.get(SKILLS_SOURCE)
        if store is None:
            raise SaveError("Plugin registry is not loaded")
        store.save_registry(self.rotator)

    # Server mutations

    def toggle(self, name: str, source: SourceId) -> bool:
        """Flip the disabled flag of ``name`` in ``source``; False if absent."""
        store = self.stores.get(source)
        if store is None or not isinstance(store.get_server(name), dict):
            return False
        server = store.servers[name]
        server["disabled"] = not server.get("disabled", False)
        self.save(source)
        logger.info(f"Toggled '{name}' in {source.value}: disabled={server['disabled']}")
        return True

    def set_enabled(self, name: str, source: SourceId, enabled: bool) -> bool:
        """Enable or disable ``name`` in ``source``; False if absent."""
        store = self.stores.get(source)
        if store is None or not isinstance(store.get_server(name), dict):
            return False
        store.servers[name]["disabled"] = not enabled
        self.save(source)
        return True

    def delete(self, name: str, source: Optional[SourceId] = None) -> bool:
        """
        Remove ``name`` from one source, or from every source that has it.

        No trash record is written here; callers that want a soft delete
        record it themselves once the name is gone everywhere.

        Returns:
            True if at least one source lost the entry
        """
        targets = [source] if source is not None else self.available_sources
        removed = False
        for target in targets:
            store = self.stores.get(target)
            if store is None or name not in store.servers:
                continue
            del store.servers[name]
            self.save(target)
            removed = True
            logger.info(f"Removed '{name}' from {target.value}")
        return removed

    def sync_one_to(
        self,
        name: str,
        from_source: Optional[SourceId],
        to_source: SourceId,
        override: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Copy one definition into ``to_source``.

        Args:
            name: Server name
            from_source: Source to copy from, ignored when ``override`` is given
            to_source: Destination source
            override: Explicit definition to write instead

        Raises:
            ServerNotFoundError: If there is nothing to copy
            SourceUnavailableError: If the destination was not detected
        """
        if override is not None:
            definition = copy.deepcopy(override)
        else:
            store = self.stores.get(from_source) if from_source is not None else None
            if store is None or name not in store.servers:
                raise ServerNotFoundError(name, from_source.value if from_source else None)
            definition = copy.deepcopy(store.servers[name])

        destination = self._store(to_source)
        destination.ensure_servers()[name] = definition
        self.save(to_source)
        logger.info(f"Synced '{name}' to {to_source.value}")

    def sync_all_from(self, name: str, source: Optional[SourceId] = None) -> List[SourceId]:
        """
        Copy one source's definition of ``name`` into every other source.

        Without an explicit source the first source (in detection order)
        defining the name is used.

        Returns:
            Sources that were written

        Raises:
            DefinitionNotFoundError: If no source defines the name
            ServerNotFoundError: If the explicit source does not define it
        """
        if source is None:
            defining = self.sources_defining(name)
            if not defining:
                raise DefinitionNotFoundError(name)
            source = defining[0]

        origin = self.stores.get(source)
        if origin is None or name not in origin.servers:
            raise ServerNotFoundError(name, source.value)
        definition = origin.servers[name]

        written = []
        for target in self.available_sources:
            if target == source:
                continue
            self.stores[target].ensure_servers()[name] = copy.deepcopy(definition)
            self.save(target)
            written.append(target)

        logger.info(f"Synced '{name}' from {source.value} to {[t.value for t in written]}")
        return written

    def restore_definition(
        self,
        name: str,
        definition: Dict[str, Any],
        sources: Iterable[str],
    ) -> Tuple[List[SourceId], List[str]]:
        """
        Write a definition back into each recorded source still available.

        Returns:
            (restored sources, recorded sources that were skipped)
        """
        restored: List[SourceId] = []
        skipped: List[str] = []
        for recorded in sources:
            try:
                source = SourceId(recorded)
            except ValueError:
                skipped.append(recorded)
                continue
            if not self.is_available(source):
                skipped.append(recorded)
                continue
            self.stores[source].ensure_servers()[name] = copy.deepcopy(definition)
            self.save(source)
            restored.append(source)

        if skipped:
            logger.warning(f"Restoring '{name}' skipped unavailable sources: {skipped}")
        return restored, skipped

    # Skill mutations

    def toggle_skill(self, key: str) -> bool:
        """Flip the first instance's disabled flag; False if the key is unknown."""
        store = self.stores.get(SKILLS_SOURCE)
        if store is None:
            return False
        instances = store.plugins.get(key)
        if not isinstance(instances, list) or not instances or not isinstance(instances[0], dict):
            return False
        instances[0]["disabled"] = not instances[0].get("disabled", False)
        self.save_registry()
        return True

    def delete_skill(self, key: str) -> bool:
        store = self.stores.get(SKILLS_SOURCE)
        if store is None or key not in store.plugins:
            return False
        del store.plugins[key]
        self.save_registry()
        return True
