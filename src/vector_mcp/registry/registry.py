"""Tool registry implementation."""

import json
from pathlib import Path
from typing import Any, Iterable

import yaml
from loguru import logger

from ..errors import RegistryError
from ..storage import atomic_write_json
from .models import ToolRecord


class ToolRegistry:
    """
    Ordered, id-deduplicated collection of ToolRecords.

    This is the boundary to source-sync pipelines: they replace the tools
    of a source, then the caller rebuilds the vector index. The retrieval
    and protocol layers only read from it.

    Features:
    - JSON (`tools.json`) or YAML (`tools: [...]`) backing file
    - Insertion-ordered storage keyed by tool id
    - Lookup by id with exact-name fallback
    """

    def __init__(self, path: str | Path | None = None):
        """Initialize empty tool registry, optionally bound to a file."""
        self.path = Path(path) if path is not None else None
        self._tools: dict[str, ToolRecord] = {}

    @classmethod
    def from_file(cls, path: str | Path) -> "ToolRegistry":
        """
        Load registry from a JSON or YAML file.

        A missing file yields an empty registry bound to ``path``.

        Raises:
            RegistryError: If the file content has the wrong structure
            yaml.YAMLError / json.JSONDecodeError: If the file is malformed
        """
        registry = cls(path)
        registry.load()
        return registry

    def load(self) -> None:
        """Replace in-memory tools with the contents of the backing file."""
        if self.path is None or not self.path.exists():
            return

        with open(self.path, encoding="utf-8") as f:
            if self.path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        entries = self._extract_entries(data)
        try:
            tools = [ToolRecord.from_dict(entry) for entry in entries]
        except (TypeError, ValueError) as e:
            raise RegistryError(f"Invalid tool entry in {self.path}: {e}") from e
        for tool in tools:
            try:
                tool.validate_invariants()
            except RegistryError as e:
                raise RegistryError(f"Invalid tool entry in {self.path}: {e}") from e

        self._tools = {}
        self.upsert_many(tools)
        logger.debug(f"Loaded {len(self._tools)} tools from {self.path}")

    def _extract_entries(self, data: Any) -> list[dict[str, Any]]:
        # JSON registries are a bare list; YAML ones nest under "tools"
        if isinstance(data, dict):
            data = data.get("tools", [])
        if not isinstance(data, list):
            raise RegistryError(
                f"Invalid registry structure in {self.path}: expected a list of tools, "
                f"got {type(data).__name__}"
            )
        for entry in data:
            if not isinstance(entry, dict):
                raise RegistryError(f"Invalid tool entry in {self.path}: {entry!r}")
        return data

    def save(self) -> None:
        """Persist tools to the backing JSON file (YAML files are read-only)."""
        if self.path is None:
            return
        if self.path.suffix in (".yaml", ".yml"):
            logger.warning(f"Registry {self.path} is YAML; skipping save")
            return
        atomic_write_json(self.path, [tool.to_dict() for tool in self._tools.values()])

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, tool_id: str) -> ToolRecord | None:
        """
        Get tool record by ID.

        Args:
            tool_id: Tool identifier

        Returns:
            ToolRecord if found, None otherwise
        """
        return self._tools.get(tool_id)

    def find(self, tool_id: str | None = None, name: str | None = None) -> ToolRecord | None:
        """Resolve a tool by id first, falling back to exact name match."""
        if tool_id:
            tool = self.get(tool_id)
            if tool is not None:
                return tool
        if name:
            for tool in self._tools.values():
                if tool.name == name:
                    return tool
        return None

    def add(self, tool: ToolRecord) -> None:
        """
        Add or replace a single tool (in memory only).

        Raises:
            RegistryError: If tool fails validation
        """
        tool.validate_invariants()
        self._tools[tool.id] = tool

    def upsert_many(self, tools: Iterable[ToolRecord]) -> None:
        """Insert or replace tools by id; existing ids keep their position."""
        for tool in tools:
            self.add(tool)

    def remove_by_source(self, source: str) -> int:
        """
        Drop every tool from ``source`` or from a file inside it (``source#path``).

        Returns:
            Number of tools removed
        """
        prefix = f"{source}#"
        kept = {
            tool_id: tool
            for tool_id, tool in self._tools.items()
            if tool.source != source and not tool.source.startswith(prefix)
        }
        removed = len(self._tools) - len(kept)
        self._tools = kept
        return removed

    def replace_source(self, source: str, tools: Iterable[ToolRecord]) -> None:
        """Swap the tools of one source and persist the registry."""
        self.remove_by_source(source)
        self.upsert_many(tools)
        self.save()

    def get_all(self) -> list[ToolRecord]:
        """
        Get all registered tool records.

        Returns:
            List of all ToolRecord objects, in registry order
        """
        return list(self._tools.values())
