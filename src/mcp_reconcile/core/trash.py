"""
Manager state file and the trash it holds.

The state document looks like::

    {"version": 1, "trash": {name: entry, ...}, "settings": {"lastUsed": ...}}

A missing or broken file is never fatal; the store starts from an empty
default document and the next save replaces it.
"""

import copy
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from mcp_reconcile.core.exceptions import ConfigLoadError, SaveError
from mcp_reconcile.core.models import TrashEntry, utc_now_iso
from mcp_reconcile.utils.files import read_json, write_json_atomic
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)

STATE_VERSION = 1


def default_state() -> Dict[str, Any]:
    return {
        "version": STATE_VERSION,
        "trash": {},
        "settings": {"lastUsed": None},
    }


class TrashStore:
    """Soft-delete holding area persisted in the manager state file."""

    def __init__(self, state_path: Path):
        self.state_path = Path(state_path)
        self.state = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.state_path.exists():
            return default_state()
        try:
            data = read_json(self.state_path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load manager state from {self.state_path}: {e}")
            return default_state()

        if not isinstance(data, dict):
            logger.error(f"Manager state {self.state_path} is not a JSON object, starting fresh")
            return default_state()

        if not isinstance(data.get("trash"), dict):
            data["trash"] = {}
        if not isinstance(data.get("settings"), dict):
            data["settings"] = {"lastUsed": None}
        data.setdefault("version", STATE_VERSION)
        return data

    def save(self) -> None:
        """
        Persist the state document.

        Raises:
            SaveError: If the write fails
        """
        try:
            write_json_atomic(self.state_path, self.state)
        except OSError as e:
            logger.error(f"Failed to save manager state to {self.state_path}: {e}")
            raise SaveError(f"Failed to save manager state: {e}", error_code="WRITE_FAILED")

    def reload(self) -> None:
        self.state = self._load()

    @property
    def _trash(self) -> Dict[str, Any]:
        return self.state["trash"]

    def get_trash(self) -> Dict[str, TrashEntry]:
        """Trash entries by server name; malformed entries are skipped."""
        entries = {}
        for name, raw in self._trash.items():
            try:
                entries[name] = TrashEntry.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed trash entry '{name}': {e}")
        return entries

    def contains(self, name: str) -> bool:
        return name in self._trash

    def move_to_trash(self, name: str, definition: Dict[str, Any],
                      from_sources: Optional[Iterable[str]] = None) -> TrashEntry:
        """Record a deleted definition, replacing any entry of the same name."""
        entry = TrashEntry(
            config=copy.deepcopy(definition),
            from_sources=[str(getattr(s, "value", s)) for s in (from_sources or [])],
        )
        self._trash[name] = entry.model_dump(by_alias=True)
        self.save()
        logger.info(f"Moved '{name}' to trash (from {entry.from_sources})")
        return entry

    def restore_from_trash(self, name: str) -> Optional[TrashEntry]:
        """Remove and return the entry for ``name``, or None if absent."""
        raw = self._trash.get(name)
        if raw is None:
            return None
        try:
            entry = TrashEntry.model_validate(raw)
        except ValidationError as e:
            raise ConfigLoadError(f"Trash entry '{name}' is malformed: {e}", error_code="INVALID_SHAPE")
        del self._trash[name]
        self.save()
        logger.info(f"Took '{name}' out of trash")
        return entry

    def put_back(self, name: str, entry: TrashEntry) -> None:
        """Re-insert an entry exactly as it was taken out."""
        self._trash[name] = entry.model_dump(by_alias=True)
        self.save()

    def clear_trash(self) -> int:
        count = len(self._trash)
        self.state["trash"] = {}
        self.save()
        logger.info(f"Cleared {count} trash entries")
        return count

    @property
    def last_used(self) -> Optional[str]:
        return self.state["settings"].get("lastUsed")

    def mark_used(self) -> None:
        self.state["settings"]["lastUsed"] = utc_now_iso()
        self.save()
