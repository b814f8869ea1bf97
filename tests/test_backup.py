"""
Test backup rotation.
"""

import json
import os
import stat
from datetime import datetime, timezone
from unittest.mock import patch

from mcp_reconcile.core.backup import (
    REGISTRY_PREFIX,
    BackupRotator,
    backup_timestamp,
    source_backup_prefix,
)
from mcp_reconcile.core.models import SourceId


class TestBackupNames:
    """Test backup file naming."""

    def test_timestamp_is_filename_safe(self):
        stamp = backup_timestamp(datetime(2025, 3, 4, 5, 6, 7, 123000, tzinfo=timezone.utc))

        assert stamp == "2025-03-04T05-06-07-123000Z"
        assert ":" not in stamp and "." not in stamp

    def test_source_prefix(self, tmp_path):
        assert source_backup_prefix("claude", tmp_path / ".claude.json") == "claude-.claude-"
        assert source_backup_prefix("gemini", tmp_path / "settings.json") == "gemini-settings-"


class TestBackupRotator:
    """Test BackupRotator."""

    def test_backup_copies_file(self, tmp_path, rotator):
        """Test a backup holds the pre-write content."""
        target = tmp_path / "settings.json"
        target.write_text('{"a": 1}', encoding="utf-8")

        backup = rotator.backup(target, "gemini-settings-")

        assert backup is not None
        assert backup.parent == rotator.backup_dir
        assert backup.name.startswith("gemini-settings-")
        assert json.loads(backup.read_text(encoding="utf-8")) == {"a": 1}

    def test_missing_file_is_not_backed_up(self, tmp_path, rotator):
        """Test backing up a file that does not exist is a no-op."""
        assert rotator.backup(tmp_path / "absent.json", "x-") is None
        assert not rotator.backup_dir.exists()

    def test_retains_ten_newest(self, tmp_path, rotator):
        """Test only the ten newest backups of a prefix survive."""
        target = tmp_path / "settings.json"
        created = []
        for i in range(15):
            target.write_text(json.dumps({"i": i}), encoding="utf-8")
            created.append(rotator.backup(target, "gemini-settings-"))

        kept = rotator.list_backups("gemini-settings-")

        assert len(kept) == 10
        assert kept == list(reversed(created[5:]))
        assert json.loads(kept[0].read_text(encoding="utf-8")) == {"i": 14}

    def test_prefixes_rotate_independently(self, tmp_path, rotator):
        """Test pruning one prefix never touches another."""
        target = tmp_path / "file.json"
        target.write_text("{}", encoding="utf-8")
        for _ in range(12):
            rotator.backup(target, "claude-.claude-")
        rotator.backup(target, REGISTRY_PREFIX)

        assert len(rotator.list_backups("claude-.claude-")) == 10
        assert len(rotator.list_backups(REGISTRY_PREFIX)) == 1

    def test_copy_failure_is_swallowed(self, tmp_path, rotator):
        """Test a failing copy returns None instead of raising."""
        target = tmp_path / "settings.json"
        target.write_text("{}", encoding="utf-8")

        with patch("mcp_reconcile.core.backup.shutil.copy2", side_effect=PermissionError("denied")):
            assert rotator.backup(target, "x-") is None

    def test_backup_keeps_permissions(self, tmp_path, rotator):
        """Test a private file is backed up as a private file."""
        target = tmp_path / "settings.json"
        target.write_text("{}", encoding="utf-8")
        os.chmod(target, 0o600)

        backup = rotator.backup(target, "gemini-settings-")

        assert stat.S_IMODE(backup.stat().st_mode) == 0o600

    def test_custom_keep(self, tmp_path, clock):
        """Test a smaller retention count."""
        rotator = BackupRotator(tmp_path / "b", keep=2, clock=clock)
        target = tmp_path / "f.json"
        target.write_text("{}", encoding="utf-8")
        for _ in range(5):
            rotator.backup(target, "p-")

        assert len(rotator.list_backups("p-")) == 2


class TestBackupsOnSave:
    """Test backups taken by engine writes."""

    def test_each_write_backs_up_previous_content(self, engine, specs, rotator):
        """Test the backup holds the file as it was before the write."""
        before = json.loads(specs[1].config_path.read_text(encoding="utf-8"))

        engine.toggle("beta", SourceId.GEMINI)

        backups = rotator.list_backups(source_backup_prefix("gemini", specs[1].config_path))
        assert len(backups) == 1
        assert json.loads(backups[0].read_text(encoding="utf-8")) == before

    def test_registry_writes_use_plugins_prefix(self, engine, rotator):
        """Test registry saves are backed up under their own prefix."""
        engine.toggle_skill("reviewer@official")

        assert len(rotator.list_backups(REGISTRY_PREFIX)) == 1

    def test_backup_failure_does_not_block_save(self, engine, specs):
        """Test the write proceeds when the backup cannot be made."""
        with patch("mcp_reconcile.core.backup.shutil.copy2", side_effect=OSError("disk full")):
            assert engine.toggle("alpha", SourceId.CLAUDE) is True

        saved = json.loads(specs[0].config_path.read_text(encoding="utf-8"))
        assert saved["mcpServers"]["alpha"]["disabled"] is True
