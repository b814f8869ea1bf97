"""
Test ReconcileManager operations and their reported outcomes.
"""

import json
from unittest.mock import patch

from mcp_reconcile.core.backup import BackupRotator
from mcp_reconcile.core.engine import ReconciliationEngine
from mcp_reconcile.core.exceptions import SaveError
from mcp_reconcile.core.manager import ReconcileManager
from mcp_reconcile.core.models import SourceId
from mcp_reconcile.core.trash import TrashStore
from mcp_reconcile.utils.files import write_json_atomic


def load(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestServerOperations:
    """Test per-source server operations."""

    def test_toggle_reports_new_state(self, manager):
        result = manager.toggle("alpha", SourceId.CLAUDE)

        assert result.success
        assert "disabled" in result.message
        assert manager.servers()["alpha"].enabled_in(SourceId.CLAUDE) is False

    def test_toggle_missing_is_failure(self, manager):
        """Test a missing server is reported rather than raised."""
        result = manager.toggle("alpha", SourceId.GEMINI)

        assert not result.success
        assert result.error_code == "SERVER_NOT_FOUND"

    def test_set_enabled(self, manager):
        result = manager.set_enabled("shared", SourceId.GEMINI, True)

        assert result.success
        assert manager.servers()["shared"].enabled_in(SourceId.GEMINI) is True

    def test_add_to_source(self, manager, specs):
        """Test adding copies the first source's definition."""
        result = manager.add_to_source("alpha", SourceId.GEMINI)

        assert result.success
        assert load(specs[1].config_path)["mcpServers"]["alpha"]["command"] == "npx"

    def test_add_to_source_already_present(self, manager, rotator):
        """Test adding where the server already exists writes nothing."""
        result = manager.add_to_source("shared", SourceId.GEMINI)

        assert result.success
        assert "already" in result.message
        assert rotator.list_backups("gemini-") == []

    def test_remove_from_source(self, manager):
        result = manager.remove_from_source("shared", SourceId.CLAUDE)

        assert result.success
        assert manager.servers()["shared"].source_ids == [SourceId.GEMINI]

    def test_remove_last_source_is_refused(self, manager, specs):
        """Test removing the only copy is refused and nothing is written."""
        result = manager.remove_from_source("alpha", SourceId.CLAUDE)

        assert not result.success
        assert result.error_code == "LAST_SOURCE"
        assert "alpha" in load(specs[0].config_path)["mcpServers"]

    def test_sync_to(self, manager):
        result = manager.sync_to("beta", SourceId.GEMINI, SourceId.CLAUDE)

        assert result.success
        assert manager.servers()["beta"].source_ids == [SourceId.CLAUDE, SourceId.GEMINI]

    def test_sync_all_unknown(self, manager):
        result = manager.sync_all("ghost")

        assert not result.success
        assert result.error_code == "NO_DEFINITION"

    def test_operations_record_last_use(self, manager, trash):
        manager.toggle("alpha", SourceId.CLAUDE)

        assert trash.last_used is not None

    def test_state_write_failure_is_only_a_warning(self, manager):
        """Test a failure to record last use does not fail the operation."""
        with patch.object(TrashStore, "mark_used", side_effect=SaveError("no space")):
            result = manager.toggle("alpha", SourceId.CLAUDE)

        assert result.success

    def test_io_error_is_reported(self, manager):
        """Test unexpected I/O errors become failed results."""
        with patch.object(ReconciliationEngine, "toggle", side_effect=PermissionError("denied")):
            result = manager.toggle("alpha", SourceId.CLAUDE)

        assert not result.success
        assert result.error_code == "IO_ERROR"


class TestDeleteAndRestore:
    """Test deleting to the trash and restoring from it."""

    def test_delete_moves_to_trash(self, manager, specs):
        """Test delete removes every copy and records provenance."""
        result = manager.delete("shared")

        assert result.success
        assert "shared" not in manager.servers()
        assert "shared" not in load(specs[0].config_path)["mcpServers"]
        assert "shared" not in load(specs[1].config_path)["mcpServers"]

        entry = manager.trash()["shared"]
        assert entry.from_sources == ["claude", "gemini"]
        assert entry.config == {"command": "uvx", "args": ["shared-server"]}

    def test_delete_partial_write_failure_keeps_definition(self, manager, specs):
        """Test a copy removed before a later write fails is still in the trash."""
        def failing_write(path, data):
            if path.name == "settings.json":
                raise OSError("disk full")
            write_json_atomic(path, data)

        with patch("mcp_reconcile.core.sources.write_json_atomic", side_effect=failing_write):
            result = manager.delete("shared")

        assert not result.success
        assert "shared" not in load(specs[0].config_path)["mcpServers"]
        assert "shared" in load(specs[1].config_path)["mcpServers"]
        entry = manager.trash()["shared"]
        assert entry.config == {"command": "uvx", "args": ["shared-server"]}
        assert entry.from_sources == ["claude"]

    def test_delete_first_write_failure_leaves_no_trash_entry(self, manager, specs):
        """Test nothing is trashed when no source was actually changed."""
        with patch("mcp_reconcile.core.sources.write_json_atomic", side_effect=OSError("read-only")):
            result = manager.delete("shared")

        assert not result.success
        assert manager.trash() == {}
        assert manager.servers()["shared"].source_ids == [SourceId.CLAUDE, SourceId.GEMINI]

    def test_delete_unknown(self, manager):
        result = manager.delete("ghost")

        assert not result.success
        assert manager.trash() == {}

    def test_restore_round_trip(self, manager, specs):
        """Test restore writes the definition back to each recorded source."""
        manager.delete("shared")

        result = manager.restore("shared")

        assert result.success
        assert result.warnings == []
        assert manager.servers()["shared"].source_ids == [SourceId.CLAUDE, SourceId.GEMINI]
        assert load(specs[1].config_path)["mcpServers"]["shared"] == {
            "command": "uvx", "args": ["shared-server"],
        }
        assert manager.trash() == {}

    def test_restore_skips_unavailable_source(self, manager, specs, trash, tmp_path):
        """Test a source that disappeared is skipped with a warning."""
        manager.delete("shared")
        specs[1].config_path.unlink()
        reloaded = ReconcileManager(
            ReconciliationEngine(specs, BackupRotator(tmp_path / "b")), TrashStore(trash.state_path),
        )

        result = reloaded.restore("shared")

        assert result.success
        assert result.warnings == ["Skipped unavailable source: gemini"]
        assert reloaded.servers()["shared"].source_ids == [SourceId.CLAUDE]
        assert reloaded.trash() == {}

    def test_restore_with_no_available_source(self, manager, specs, trash, tmp_path):
        """Test the entry stays in the trash when nothing can receive it."""
        manager.delete("beta")
        specs[1].config_path.unlink()
        reloaded = ReconcileManager(
            ReconciliationEngine(specs, BackupRotator(tmp_path / "b")), TrashStore(trash.state_path),
        )

        result = reloaded.restore("beta")

        assert not result.success
        assert result.error_code == "SOURCE_UNAVAILABLE"
        assert "beta" in reloaded.trash()

    def test_restore_write_failure_keeps_entry(self, manager):
        """Test a failed write puts the entry back in the trash."""
        manager.delete("alpha")

        with patch.object(ReconciliationEngine, "save", side_effect=SaveError("write failed")):
            result = manager.restore("alpha")

        assert not result.success
        assert "alpha" in manager.trash()

    def test_restore_unknown(self, manager):
        result = manager.restore("ghost")

        assert not result.success
        assert result.error_code == "TRASH_NOT_FOUND"

    def test_clear_trash(self, manager):
        manager.delete("alpha")
        manager.delete("beta")

        result = manager.clear_trash()

        assert result.success
        assert "2" in result.message
        assert manager.trash() == {}


class TestSkillOperations:
    """Test skill operations through the manager."""

    def test_toggle_skill(self, manager):
        result = manager.toggle_skill("formatter@community")

        assert result.success
        assert manager.skills()["formatter@community"].disabled is False

    def test_delete_skill(self, manager, specs):
        result = manager.delete_skill("formatter@community")

        assert result.success
        assert "formatter@community" not in manager.skills()
        assert "formatter@community" not in load(specs[0].registry_path)["plugins"]
        assert "reviewer@official" in load(specs[0].registry_path)["plugins"]

    def test_unknown_skill(self, manager):
        result = manager.delete_skill("nope@none")

        assert not result.success
        assert result.error_code == "SKILL_NOT_FOUND"

    def test_toggle_malformed_skill_is_reported(self, specs, registry_document, trash, tmp_path):
        """Test a registry entry that cannot be read is reported as not found."""
        registry_document["plugins"]["broken@local"] = [{"version": 5}]
        specs[0].registry_path.write_text(json.dumps(registry_document), encoding="utf-8")
        manager = ReconcileManager(ReconciliationEngine(specs, BackupRotator(tmp_path / "b")), trash)

        result = manager.toggle_skill("broken@local")

        assert not result.success
        assert result.error_code == "SKILL_NOT_FOUND"
        assert "broken@local" not in manager.skills()
        assert "disabled" not in load(specs[0].registry_path)["plugins"]["broken@local"][0]
