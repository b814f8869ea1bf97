"""
Data models for MCP Reconcile.

Pydantic models describe what is persisted or configured (sources, skills,
trash entries, typed server definitions). The merged view uses plain
dataclasses because it must hold references into the loaded documents
rather than validated copies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SourceId(str, Enum):
    """Supported CLI tools, in detection order."""

    CLAUDE = "claude"
    GEMINI = "gemini"

    @property
    def display_name(self) -> str:
        return SOURCE_DISPLAY_NAMES.get(self, self.value)


SOURCE_DISPLAY_NAMES = {
    SourceId.CLAUDE: "Claude Code",
    SourceId.GEMINI: "Gemini Code Assist",
}


class SourceSpec(BaseModel):
    """Where a source keeps its configuration on disk."""

    source: SourceId = Field(description="Source identifier")
    config_path: Path = Field(description="JSON file holding the mcpServers map")
    registry_path: Optional[Path] = Field(
        default=None,
        description="Auxiliary plugin/skill registry, if the tool has one",
    )


# Transport kinds that are reachable only over the network
REMOTE_TRANSPORTS = ("sse", "http", "streamable-http")


class StdioServerDefinition(BaseModel):
    """A server launched as a local subprocess."""

    model_config = ConfigDict(extra="allow")

    command: str
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    type: Optional[str] = None
    disabled: bool = False


class RemoteServerDefinition(BaseModel):
    """A server reached over SSE or HTTP."""

    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None
    type: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    disabled: bool = False


class OpaqueServerDefinition(BaseModel):
    """A definition matching no known transport shape."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    disabled: bool = False


ServerDefinition = Union[StdioServerDefinition, RemoteServerDefinition, OpaqueServerDefinition]


def parse_server_definition(raw: Dict[str, Any]) -> ServerDefinition:
    """
    Build the typed view of a raw server definition.

    A ``command`` with an empty or missing transport type (or ``stdio``)
    wins over a URL; anything with a URL or a network transport type is remote.
    """
    transport = raw.get("type")
    if raw.get("command") and (not transport or transport == "stdio"):
        return StdioServerDefinition.model_validate(raw)
    if raw.get("url") or transport in REMOTE_TRANSPORTS:
        return RemoteServerDefinition.model_validate(raw)
    return OpaqueServerDefinition.model_validate(raw)


@dataclass
class SourcePresence:
    """One source's copy of a server in the merged view."""

    enabled: bool
    config: Dict[str, Any]


@dataclass
class AggregatedServer:
    """A server name merged across every source that defines it."""

    name: str
    sources: Dict[SourceId, SourcePresence] = field(default_factory=dict)

    @property
    def source_ids(self) -> List[SourceId]:
        return list(self.sources)

    def first_config(self) -> Dict[str, Any]:
        """Definition from the first source, in detection order."""
        return next(iter(self.sources.values())).config

    @property
    def definition(self) -> ServerDefinition:
        return parse_server_definition(self.first_config())

    def enabled_in(self, source: SourceId) -> Optional[bool]:
        presence = self.sources.get(source)
        return presence.enabled if presence else None


class Skill(BaseModel):
    """A plugin/skill installed in the distinguished source's registry."""

    key: str = Field(description="Composite name@marketplace identifier")
    name: str
    marketplace: Optional[str] = None
    version: Optional[str] = None
    install_path: Optional[str] = None
    installed_at: Optional[str] = None
    last_updated: Optional[str] = None
    scope: Optional[str] = None
    disabled: bool = False

    @classmethod
    def from_instance(cls, key: str, instance: Dict[str, Any]) -> "Skill":
        name, _, marketplace = key.partition("@")
        return cls(
            key=key,
            name=name,
            marketplace=marketplace or None,
            version=instance.get("version"),
            install_path=instance.get("installPath"),
            installed_at=instance.get("installedAt"),
            last_updated=instance.get("lastUpdated"),
            scope=instance.get("scope"),
            disabled=bool(instance.get("disabled", False)),
        )


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TrashEntry(BaseModel):
    """A soft-deleted server definition with its provenance."""

    model_config = ConfigDict(populate_by_name=True)

    config: Dict[str, Any] = Field(description="Deep copy of the deleted definition")
    deleted_at: str = Field(default_factory=utc_now_iso, alias="deletedAt")
    from_sources: List[str] = Field(default_factory=list, alias="fromCLIs")


class OperationResult(BaseModel):
    """Outcome of a mutation as seen by the presentation layer."""

    success: bool
    message: str
    warnings: List[str] = Field(default_factory=list)
    error_code: Optional[str] = None
