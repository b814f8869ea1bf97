"""
Introspection result types.

A result is one of four variants distinguished by ``status``; only
``Pending`` is non-terminal.
"""

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class CapabilityDescriptor(BaseModel):
    """A tool, resource or prompt advertised by a server."""

    name: str
    description: Optional[str] = None
    uri: Optional[str] = None

    @classmethod
    def from_sdk(cls, item: Any) -> "CapabilityDescriptor":
        uri = getattr(item, "uri", None)
        return cls(
            name=getattr(item, "name", None) or str(uri or "?"),
            description=getattr(item, "description", None),
            uri=str(uri) if uri is not None else None,
        )


class Pending(BaseModel):
    status: Literal["pending"] = "pending"

    @property
    def is_terminal(self) -> bool:
        return False


class Succeeded(BaseModel):
    status: Literal["succeeded"] = "succeeded"
    tools: List[CapabilityDescriptor] = Field(default_factory=list)
    resources: List[CapabilityDescriptor] = Field(default_factory=list)
    prompts: List[CapabilityDescriptor] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return True


class Failed(BaseModel):
    status: Literal["failed"] = "failed"
    reason: str

    @property
    def is_terminal(self) -> bool:
        return True


class RemoteSkipped(BaseModel):
    status: Literal["remote_skipped"] = "remote_skipped"

    @property
    def is_terminal(self) -> bool:
        return True


IntrospectionResult = Union[Pending, Succeeded, Failed, RemoteSkipped]
