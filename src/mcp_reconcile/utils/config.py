"""
Configuration management for MCP Reconcile.

Provides hierarchical configuration loading with validation using Pydantic.
TOML files are read in order of increasing precedence, then environment
variables (``MCP_RECONCILE_*``) and explicit overrides apply on top.
"""

import os
from pathlib import Path
from typing import Any, List, Optional, Union

import toml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from mcp_reconcile.core.models import SourceId, SourceSpec
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)


def _expand(path: Union[str, Path]) -> Path:
    return Path(os.path.expanduser(str(path)))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    enabled: bool = Field(default=True, description="Enable logging completely")
    level: str = Field(default="INFO", description="File logging level")
    console_level: str = Field(default="WARNING", description="Console logging level")
    format_type: str = Field(default="text", description="Log format (text/json)")
    file: Optional[str] = Field(default=None, description="Log file path")
    enable_rich: bool = Field(default=True, description="Enable Rich console output")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Max log file size")
    backup_count: int = Field(default=5, description="Number of rotated log files")

    @field_validator("level", "console_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("format_type")
    @classmethod
    def validate_format_type(cls, v: str) -> str:
        """Validate format type."""
        if v not in ["text", "json"]:
            raise ValueError(f"Invalid format type: {v}")
        return v


class SourceConfig(BaseModel):
    """File locations for one supported CLI tool."""

    enabled: bool = Field(default=True, description="Detect this source at all")
    config_path: str = Field(description="Path to the tool's JSON configuration")
    registry_path: Optional[str] = Field(
        default=None,
        description="Path to the tool's plugin/skill registry",
    )


class Config(BaseSettings):
    """Main configuration class."""

    debug: bool = Field(default=False, description="Enable debug mode")
    verbose: bool = Field(default=False, description="Enable verbose output")
    config_dir: str = Field(
        default="~/.config/mcp-reconcile",
        description="Configuration directory",
    )
    state_file: Optional[str] = Field(
        default=None,
        description="Manager state (trash) file; defaults to <config_dir>/state.json",
    )
    backup_dir: Optional[str] = Field(
        default=None,
        description="Backup directory; defaults to <config_dir>/backups",
    )
    backup_keep: int = Field(default=10, description="Backups kept per file")

    claude: SourceConfig = Field(default_factory=lambda: SourceConfig(
        config_path="~/.claude.json",
        registry_path="~/.claude/plugins/installed_plugins.json",
    ))
    gemini: SourceConfig = Field(default_factory=lambda: SourceConfig(
        config_path="~/.gemini/settings.json",
    ))

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "MCP_RECONCILE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @field_validator("backup_keep")
    @classmethod
    def validate_backup_keep(cls, v: int) -> int:
        if v < 1:
            raise ValueError("backup_keep must be at least 1")
        return v

    def get_config_dir(self) -> Path:
        """Get configuration directory path."""
        return _expand(self.config_dir)

    def get_state_file(self) -> Path:
        if self.state_file:
            return _expand(self.state_file)
        return self.get_config_dir() / "state.json"

    def get_backup_dir(self) -> Path:
        if self.backup_dir:
            return _expand(self.backup_dir)
        return self.get_config_dir() / "backups"

    def get_log_file(self) -> Optional[Path]:
        """Get log file path."""
        if self.logging.file:
            log_path = _expand(self.logging.file)
            if not log_path.is_absolute():
                log_path = self.get_config_dir() / log_path
            return log_path
        return None

    def source_specs(self) -> List[SourceSpec]:
        """Known sources in detection order."""
        specs = []
        for source in SourceId:
            source_config: SourceConfig = getattr(self, source.value)
            if not source_config.enabled:
                continue
            specs.append(SourceSpec(
                source=source,
                config_path=_expand(source_config.config_path),
                registry_path=(
                    _expand(source_config.registry_path)
                    if source_config.registry_path else None
                ),
            ))
        return specs


class ConfigManager:
    """Configuration manager with hierarchical loading."""

    def __init__(self):
        self._config: Optional[Config] = None

    def load_config(
        self,
        config_files: Optional[List[Union[str, Path]]] = None,
        **overrides: Any,
    ) -> Config:
        """
        Load configuration from multiple sources.

        Args:
            config_files: List of configuration files to load
            **overrides: Configuration overrides

        Returns:
            Loaded configuration
        """
        if self._config is not None:
            return self._config

        if config_files is None:
            config_files = [
                "/etc/mcp-reconcile/config.toml",
                "~/.config/mcp-reconcile/config.toml",
                "./.mcp-reconcile.toml",
            ]

        config_data = {}

        for config_file in config_files:
            file_path = _expand(config_file)
            if file_path.exists():
                try:
                    config_data.update(toml.load(file_path))
                    logger.debug(f"Loaded configuration from {file_path}")
                except (toml.TomlDecodeError, OSError) as e:
                    logger.warning(f"Failed to load config from {file_path}: {e}")

        config_data.update(overrides)

        self._config = Config(**config_data)

        return self._config

    def get_config(self) -> Config:
        """Get current configuration."""
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_config(self, **overrides: Any) -> Config:
        """Reload configuration."""
        self._config = None
        return self.load_config(**overrides)


# Global configuration manager
_config_manager = ConfigManager()

load_config = _config_manager.load_config
get_config = _config_manager.get_config
reload_config = _config_manager.reload_config
