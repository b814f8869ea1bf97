"""
Pytest configuration and fixtures for MCP Reconcile testing.

Every fixture works inside tmp_path; nothing touches the real home
directory configuration files.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict

import pytest

from mcp_reconcile.core.backup import BackupRotator
from mcp_reconcile.core.engine import ReconciliationEngine
from mcp_reconcile.core.manager import ReconcileManager
from mcp_reconcile.core.models import SourceId, SourceSpec
from mcp_reconcile.core.trash import TrashStore


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def claude_document() -> Dict[str, Any]:
    return {
        "numStartups": 42,
        "projects": {"/home/user/project": {"allowedTools": []}},
        "mcpServers": {
            "alpha": {"command": "npx", "args": ["-y", "alpha-server"], "env": {"TOKEN": "x"}},
            "shared": {"command": "uvx", "args": ["shared-server"]},
        },
    }


@pytest.fixture
def gemini_document() -> Dict[str, Any]:
    return {
        "theme": "dark",
        "mcpServers": {
            "beta": {"url": "https://example.com/mcp", "type": "http"},
            "shared": {"command": "uvx", "args": ["shared-server", "--other"], "disabled": True},
        },
    }


@pytest.fixture
def registry_document() -> Dict[str, Any]:
    return {
        "version": 1,
        "plugins": {
            "reviewer@official": [
                {"version": "1.2.0", "installPath": "/plugins/reviewer", "scope": "user"},
            ],
            "formatter@community": [
                {"version": "0.3.1", "disabled": True},
                {"version": "0.2.0"},
            ],
        },
    }


@pytest.fixture
def specs(tmp_path, claude_document, gemini_document, registry_document):
    """Source specs pointing at freshly written documents."""
    home = tmp_path / "home"
    claude_path = write_json(home / ".claude.json", claude_document)
    gemini_path = write_json(home / ".gemini" / "settings.json", gemini_document)
    registry_path = write_json(
        home / ".claude" / "plugins" / "installed_plugins.json", registry_document,
    )
    return [
        SourceSpec(source=SourceId.CLAUDE, config_path=claude_path, registry_path=registry_path),
        SourceSpec(source=SourceId.GEMINI, config_path=gemini_path),
    ]


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def rotator(tmp_path, clock) -> BackupRotator:
    return BackupRotator(tmp_path / "backups", keep=10, clock=clock)


@pytest.fixture
def engine(specs, rotator) -> ReconciliationEngine:
    return ReconciliationEngine(specs, rotator)


@pytest.fixture
def trash(tmp_path) -> TrashStore:
    return TrashStore(tmp_path / "state" / "state.json")


@pytest.fixture
def manager(engine, trash) -> ReconcileManager:
    return ReconcileManager(engine, trash)
