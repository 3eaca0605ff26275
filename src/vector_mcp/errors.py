"""Exception hierarchy for VectorMCP.

Only IndexIOError and RegistryError propagate to callers. ProtocolError is
converted to a JSON-RPC error object inside the dispatcher, and
ToolInvocationError becomes ``isError`` tool content.
"""

from typing import Any, Optional

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class VectorMcpError(Exception):
    """Base class for all VectorMCP errors."""


class ProtocolError(VectorMcpError):
    """Malformed request or unknown method, carried as a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class ToolInvocationError(VectorMcpError):
    """Upstream network or HTTP failure while calling a tool."""

    def __init__(self, message: str, upstream: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.upstream = upstream
        self.status = status


class IndexIOError(VectorMcpError):
    """Vector index snapshot could not be read or written."""


class RegistryError(VectorMcpError):
    """Tool registry file is missing required structure."""
