"""
Tool registry data models.

Defines ToolRecord and the invoke descriptor variants that tell the
dispatcher how a tool is executed.

## Invoke descriptors

Every tool carries exactly one of:
- `NoopInvoke` - listed for discovery only
- `SkillInvoke` - a local skill document, not remotely callable
- `WebMcpInvoke(url, tool_name)` - forwarded as an MCP `tools/call`
- `GenericInvoke(url, method)` - forwarded as a plain HTTP request

Records whose stored `invoke.type` is not recognised load as
`UnsupportedInvoke` so the dispatcher can report them instead of failing
at load time.

## Serialized form

Tools round-trip through the camelCase dicts used in `tools.json` and the
index snapshot (`skillFormat`, `markdownBody`, `invoke: {type, ...}`).
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Union

from ..errors import RegistryError


@dataclass(frozen=True)
class NoopInvoke:
    """Tool is registered for discovery only."""

    type_name: str = "noop"


@dataclass(frozen=True)
class SkillInvoke:
    """Tool is a local skill document."""

    type_name: str = "skill"


@dataclass(frozen=True)
class WebMcpInvoke:
    """Tool lives on a remote MCP endpoint."""

    url: str
    tool_name: str | None = None
    type_name: str = "webmcp"


@dataclass(frozen=True)
class GenericInvoke:
    """Tool is reachable as a plain HTTP endpoint."""

    url: str
    method: str = "POST"
    type_name: str = "http"


@dataclass(frozen=True)
class UnsupportedInvoke:
    """Stored invoke type that this server does not know how to execute."""

    type_name: str = "unknown"


InvokeDescriptor = Union[NoopInvoke, SkillInvoke, WebMcpInvoke, GenericInvoke, UnsupportedInvoke]


def make_tool_id(source: str, name: str) -> str:
    """Stable tool id: first 16 hex chars of sha1("<source>:<name>")."""
    return hashlib.sha1(f"{source}:{name}".encode("utf-8")).hexdigest()[:16]


def invoke_from_dict(data: dict[str, Any] | None) -> InvokeDescriptor:
    """
    Parse a stored invoke mapping into its descriptor variant.

    A missing mapping means noop. Any other type that carries a url is
    treated as a generic HTTP endpoint.
    """
    if not data:
        return NoopInvoke()

    invoke_type = str(data.get("type") or "").lower()
    url = data.get("url")

    if invoke_type == "noop":
        return NoopInvoke()
    if invoke_type == "skill":
        return SkillInvoke()
    if invoke_type == "webmcp" and url:
        return WebMcpInvoke(url=url, tool_name=data.get("tool"))
    if url:
        return GenericInvoke(url=url, method=str(data.get("method") or "POST").upper())
    return UnsupportedInvoke(type_name=invoke_type or "unknown")


def invoke_to_dict(invoke: InvokeDescriptor) -> dict[str, Any]:
    """Serialize an invoke descriptor to its stored mapping."""
    if isinstance(invoke, WebMcpInvoke):
        data: dict[str, Any] = {"type": "webmcp", "url": invoke.url}
        if invoke.tool_name:
            data["tool"] = invoke.tool_name
        return data
    if isinstance(invoke, GenericInvoke):
        return {"type": invoke.type_name, "url": invoke.url, "method": invoke.method}
    return {"type": invoke.type_name}


@dataclass
class ToolRecord:
    """
    Static metadata for a tool.

    Invariants:
    - id is unique across the registry
    - name must not be empty
    - invoke is always one of the descriptor variants
    """

    id: str
    name: str
    description: str
    source: str
    category: str = "general"
    params: dict[str, Any] = field(default_factory=dict)
    invoke: InvokeDescriptor = field(default_factory=NoopInvoke)

    # Skill-format tools
    skill_format: bool = False
    markdown_body: str = ""
    version: str | None = None
    dependencies: list[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        source: str,
        category: str = "general",
        params: dict[str, Any] | None = None,
        invoke: InvokeDescriptor | None = None,
        **skill_fields: Any,
    ) -> "ToolRecord":
        """Build a record whose id is derived from source and name."""
        return cls(
            id=make_tool_id(source, name),
            name=name,
            description=description,
            source=source,
            category=category or "general",
            params=dict(params or {}),
            invoke=invoke or NoopInvoke(),
            **skill_fields,
        )

    def validate_invariants(self) -> bool:
        """
        Validate ToolRecord invariants.

        Returns:
            True if all invariants are satisfied

        Raises:
            RegistryError: If any invariant is violated
        """
        if not self.id:
            raise RegistryError(f"Tool {self.name!r} has an empty id")
        if not self.name:
            raise RegistryError(f"Tool {self.id!r} has an empty name")
        if not isinstance(self.params, dict):
            raise RegistryError(f"Tool {self.name!r}: params must be a mapping")
        return True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolRecord":
        name = str(data.get("name") or "")
        source = str(data.get("source") or "")
        return cls(
            id=str(data.get("id") or make_tool_id(source, name)),
            name=name,
            description=str(data.get("description") or data.get("desc") or ""),
            source=source,
            category=data.get("category") or "general",
            params=dict(data.get("params") or {}),
            invoke=invoke_from_dict(data.get("invoke")),
            skill_format=data.get("skillFormat") is True,
            markdown_body=str(data.get("markdownBody") or ""),
            version=data.get("version"),
            dependencies=list(data.get("dependencies") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "params": self.params,
            "source": self.source,
            "category": self.category,
            "invoke": invoke_to_dict(self.invoke),
        }
        if self.skill_format:
            data["skillFormat"] = True
            data["markdownBody"] = self.markdown_body
            data["version"] = self.version
            data["dependencies"] = self.dependencies
        return data
