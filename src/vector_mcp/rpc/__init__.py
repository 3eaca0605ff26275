"""MCP JSON-RPC method dispatch and tool invocation."""

from .dispatcher import RpcDispatcher
from .invocation import ToolInvoker, text_result

__all__ = ["RpcDispatcher", "ToolInvoker", "text_result"]
