"""JSON-RPC method dispatcher for the MCP surface."""

from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from .. import __version__
from ..config import Config
from ..errors import INTERNAL_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, ProtocolError
from ..registry.formatting import to_mcp_schema
from ..registry.registry import ToolRegistry
from ..retrieval.embedder import HashingEmbedder
from ..retrieval.index import SearchMatch, VectorIndex
from .invocation import ToolInvoker

JSONRPC_VERSION = "2.0"

Handler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _parse_top_k(value: Any, default: int) -> int:
    # Falsy values fall back to the default, like a missing field
    if not value:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _flatten_message_text(messages: Any) -> str:
    """Join the text of completion messages; content may be a string, block or list of blocks."""
    if not isinstance(messages, list):
        return ""

    parts: List[str] = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        content = message.get("content")
        blocks = content if isinstance(content, list) else [content]
        for block in blocks:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
    return " ".join(part for part in parts if part)


class RpcDispatcher:
    """
    Routes decoded JSON-RPC messages to MCP method handlers.

    Holds no per-call state: tools come from the registry, rankings from
    the vector index. A message without an ``id`` is a notification and
    never gets a response, whatever happens while handling it.

    Methods:
    - initialize: static capability advertisement
    - ping: liveness check
    - tools/list: every tool, or the top matches for a ``contextHint``
    - tools/call: resolve by id or name, then invoke
    - completion/complete: rank tools against prompt/context text
    """

    def __init__(
        self,
        registry: ToolRegistry,
        index: VectorIndex,
        embedder: HashingEmbedder,
        invoker: ToolInvoker,
        list_top_k: int = Config.LIST_TOP_K,
    ):
        self.registry = registry
        self.index = index
        self.embedder = embedder
        self.invoker = invoker
        self.list_top_k = list_top_k
        self._handlers: Dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "completion/complete": self._completion_complete,
        }

    async def handle(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded JSON-RPC message.

        Args:
            message: Decoded JSON value

        Returns:
            Response envelope, or None for notifications
        """
        if not isinstance(message, dict):
            logger.debug(f"Ignoring non-object JSON-RPC message: {message!r}")
            return None

        is_notification = "id" not in message
        request_id = message.get("id")
        method = message.get("method")
        params = message.get("params")
        if not isinstance(params, dict):
            params = {}

        try:
            if not method or not isinstance(method, str):
                raise ProtocolError(INVALID_REQUEST, "Invalid Request")

            handler = self._handlers.get(method)
            if handler is None:
                raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {method}")

            result = await handler(params)
        except ProtocolError as e:
            if is_notification:
                return None
            logger.debug(f"JSON-RPC error {e.code} for {method!r}: {e.message}")
            return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": e.to_dict()}
        except Exception as e:
            logger.exception(f"Unhandled error while dispatching {method!r}")
            if is_notification:
                return None
            error = ProtocolError(INTERNAL_ERROR, "Internal error", data=str(e))
            return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}

        if is_notification:
            return None
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    async def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "protocolVersion": Config.PROTOCOL_VERSION,
            "serverInfo": {"name": Config.SERVER_NAME, "version": __version__},
            "capabilities": {
                "tools": {"listChanged": False},
                "completion": {},
            },
        }

    async def _ping(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def _tools_list(self, params: Dict[str, Any]) -> Dict[str, Any]:
        context_hint = str(params.get("contextHint") or "").strip()
        if context_hint:
            top_k = _parse_top_k(params.get("topK"), self.list_top_k)
            tools = [match.tool for match in self.index.search(context_hint, self.embedder, top_k)]
        else:
            tools = self.registry.get_all()
        return {"tools": [to_mcp_schema(tool) for tool in tools]}

    async def _tools_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        metadata = params.get("metadata") if isinstance(params.get("metadata"), dict) else {}
        tool_id = metadata.get("toolId") or params.get("toolId")
        name = params.get("name")
        # Non-string ids and names cannot match a registered tool
        tool_id = tool_id if isinstance(tool_id, str) else None
        name = name if isinstance(name, str) else None
        args = params.get("arguments") if isinstance(params.get("arguments"), dict) else {}

        tool = self.registry.find(tool_id=tool_id, name=name)
        if tool is None:
            logger.info(f"tools/call could not resolve tool (id={tool_id!r}, name={name!r})")
        return await self.invoker.call(tool, args, requested=str(name or tool_id or ""))

    async def _completion_complete(self, params: Dict[str, Any]) -> Dict[str, Any]:
        fields = [
            params.get("prompt"),
            params.get("context"),
            params.get("input"),
            _flatten_message_text(params.get("messages")),
        ]
        text = " ".join(str(field) for field in fields if field)
        top_k = _parse_top_k(params.get("topK"), self.list_top_k)

        if text:
            matches = self.index.search(text, self.embedder, top_k)
        else:
            matches = [SearchMatch(score=0.0, tool=tool) for tool in self.registry.get_all()[:max(top_k, 0)]]

        return {
            "completion": [
                {"tool": to_mcp_schema(match.tool), "score": match.score} for match in matches
            ]
        }
