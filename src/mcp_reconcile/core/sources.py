"""
Source stores: one loaded configuration document per CLI tool.

The document is kept exactly as read so that keys this tool knows nothing
about survive a save untouched.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from mcp_reconcile.core.backup import REGISTRY_PREFIX, BackupRotator, source_backup_prefix
from mcp_reconcile.core.exceptions import ConfigLoadError, SaveError
from mcp_reconcile.core.models import SourceId, SourceSpec
from mcp_reconcile.utils.files import read_json, write_json_atomic
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)

SERVERS_KEY = "mcpServers"
PLUGINS_KEY = "plugins"


def _load_document(path: Path, what: str) -> Dict[str, Any]:
    try:
        data = read_json(path)
    except ValueError as e:
        raise ConfigLoadError(f"Invalid JSON in {what} {path}: {e}", error_code="INVALID_JSON")
    except OSError as e:
        raise ConfigLoadError(f"Cannot read {what} {path}: {e}", error_code="UNREADABLE")
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{what} {path} is not a JSON object", error_code="INVALID_SHAPE")
    return data


class SourceStore:
    """A CLI tool's configuration document, loaded in memory."""

    def __init__(self, spec: SourceSpec, document: Dict[str, Any],
                 registry: Optional[Dict[str, Any]] = None):
        self.spec = spec
        self.document = document
        self.registry = registry

    @property
    def source(self) -> SourceId:
        return self.spec.source

    @property
    def config_path(self) -> Path:
        return self.spec.config_path

    @classmethod
    def load(cls, spec: SourceSpec) -> "SourceStore":
        """
        Load a source's document, plus its registry when it has one.

        Raises:
            ConfigLoadError: If the configuration document cannot be used.
                A broken registry is logged and skipped instead.
        """
        document = _load_document(spec.config_path, f"{spec.source.value} config")
        store = cls(spec, document)

        if spec.registry_path is not None and spec.registry_path.exists():
            try:
                store.registry = _load_document(spec.registry_path, "plugin registry")
            except ConfigLoadError as e:
                logger.error(f"Continuing without skills data: {e}")

        return store

    @property
    def servers(self) -> Dict[str, Any]:
        """The server map, or an empty dict if the document has none."""
        servers = self.document.get(SERVERS_KEY)
        return servers if isinstance(servers, dict) else {}

    def ensure_servers(self) -> Dict[str, Any]:
        """The server map, created in the document if missing."""
        servers = self.document.get(SERVERS_KEY)
        if not isinstance(servers, dict):
            servers = self.document[SERVERS_KEY] = {}
        return servers

    def get_server(self, name: str) -> Optional[Dict[str, Any]]:
        return self.servers.get(name)

    @property
    def plugins(self) -> Dict[str, Any]:
        if not self.registry:
            return {}
        plugins = self.registry.get(PLUGINS_KEY)
        return plugins if isinstance(plugins, dict) else {}

    def save(self, rotator: BackupRotator) -> None:
        """
        Back up the on-disk file, then overwrite it with the document.

        Raises:
            SaveError: If the write fails
        """
        rotator.backup(self.config_path, source_backup_prefix(self.source.value, self.config_path))
        try:
            write_json_atomic(self.config_path, self.document)
        except OSError as e:
            logger.error(f"Failed to save {self.source.value} config to {self.config_path}: {e}")
            raise SaveError(
                f"Failed to save {self.source.value} config: {e}",
                error_code="WRITE_FAILED",
                details={"path": str(self.config_path)},
            )
        logger.debug(f"Saved {self.source.value} config to {self.config_path}")

    def save_registry(self, rotator: BackupRotator) -> None:
        """
        Back up and overwrite the plugin registry.

        Raises:
            SaveError: If the write fails or the source has no registry
        """
        if self.registry is None or self.spec.registry_path is None:
            raise SaveError(f"{self.source.value} has no plugin registry loaded")

        rotator.backup(self.spec.registry_path, REGISTRY_PREFIX)
        try:
            write_json_atomic(self.spec.registry_path, self.registry)
        except OSError as e:
            logger.error(f"Failed to save plugin registry to {self.spec.registry_path}: {e}")
            raise SaveError(
                f"Failed to save plugins config: {e}",
                error_code="WRITE_FAILED",
                details={"path": str(self.spec.registry_path)},
            )
