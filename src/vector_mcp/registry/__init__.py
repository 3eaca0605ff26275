"""Tool registry package."""
from .formatting import format_search_results, to_mcp_schema
from .models import (
    GenericInvoke,
    InvokeDescriptor,
    NoopInvoke,
    SkillInvoke,
    ToolRecord,
    UnsupportedInvoke,
    WebMcpInvoke,
    make_tool_id,
)
from .registry import ToolRegistry

__all__ = [
    "format_search_results",
    "to_mcp_schema",
    "make_tool_id",
    "ToolRecord",
    "ToolRegistry",
    "InvokeDescriptor",
    "NoopInvoke",
    "SkillInvoke",
    "WebMcpInvoke",
    "GenericInvoke",
    "UnsupportedInvoke",
]
