"""Formatting helpers for tool schemas and search results."""

from collections.abc import Iterable
from typing import Any

from .models import ToolRecord


def to_mcp_schema(tool: ToolRecord) -> dict[str, Any]:
    """
    Convert a ToolRecord to the MCP tool schema sent over the wire.

    Skill-format tools additionally expose skillFormat, version and
    dependencies in their metadata.
    """
    metadata: dict[str, Any] = {
        "toolId": tool.id,
        "category": tool.category,
        "source": tool.source,
    }
    if tool.skill_format:
        metadata["skillFormat"] = True
        metadata["version"] = tool.version
        metadata["dependencies"] = tool.dependencies

    return {
        "name": tool.name,
        "description": tool.description,
        "inputSchema": {"type": "object", "properties": tool.params or {}},
        "metadata": metadata,
    }


def format_search_results(matches: Iterable[Any]) -> str:
    """
    Format search matches for terminal output.

    Args:
        matches: Iterable of objects with ``score`` and ``tool`` attributes

    Returns:
        Formatted string, one tool per block
    """
    matches_list = list(matches)
    if not matches_list:
        return "No tools found matching your query."

    lines = [f"Found {len(matches_list)} tool(s):\n"]

    for match in matches_list:
        tool = match.tool
        lines.append(f"• {tool.name} [{tool.category}] score={match.score:.3f}")
        lines.append(f"  {tool.description}")
        lines.append("")

    return "\n".join(lines).strip()
