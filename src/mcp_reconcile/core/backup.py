"""
Backup rotation for configuration files.

Every mutating write is preceded by a timestamped copy of the file being
overwritten. Copies are grouped by a filename prefix and only the most
recent ones are retained.
"""

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_KEEP = 10
REGISTRY_PREFIX = "plugins-"


def backup_timestamp(moment: datetime) -> str:
    """Filename-safe UTC timestamp; lexical order is chronological order."""
    stamp = moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"
    return stamp.replace(":", "-").replace(".", "-")


def source_backup_prefix(source: str, config_path: Path) -> str:
    """Prefix grouping the backups of one source's configuration file."""
    return f"{source}-{config_path.stem}-"


class BackupRotator:
    """Creates timestamped backups and prunes old ones."""

    def __init__(
        self,
        backup_dir: Path,
        keep: int = DEFAULT_KEEP,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize backup rotator.

        Args:
            backup_dir: Shared directory for all backup artifacts
            keep: Artifacts retained per prefix
            clock: Source of the current time, for deterministic names
        """
        self.backup_dir = Path(backup_dir)
        self.keep = keep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def backup(self, path: Path, prefix: str) -> Optional[Path]:
        """
        Copy ``path`` into the backup directory and prune old copies.

        Failures are logged and never raised: losing a backup must not
        block the write it precedes.

        Returns:
            Path of the new backup, or None if nothing was backed up
        """
        try:
            if not path.exists():
                logger.debug(f"Nothing to back up at {path}")
                return None

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self.backup_dir / f"{prefix}{backup_timestamp(self._clock())}.json"
            shutil.copy2(path, backup_path)
            logger.debug(f"Created backup: {backup_path}")

            self.prune(prefix)
            return backup_path

        except OSError as e:
            logger.error(f"Backup of {path} failed: {e}")
            return None

    def list_backups(self, prefix: str) -> List[Path]:
        """Backups sharing ``prefix``, newest first."""
        if not self.backup_dir.exists():
            return []
        names = sorted(
            (entry.name for entry in self.backup_dir.iterdir() if entry.name.startswith(prefix)),
            reverse=True,
        )
        return [self.backup_dir / name for name in names]

    def prune(self, prefix: str) -> List[Path]:
        """Delete all but the newest ``keep`` backups for ``prefix``."""
        removed = []
        for stale in self.list_backups(prefix)[self.keep:]:
            stale.unlink()
            removed.append(stale)
        if removed:
            logger.debug(f"Pruned {len(removed)} old backups with prefix '{prefix}'")
        return removed
