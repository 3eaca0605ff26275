"""
HTTP transport: Server-Sent Events broadcast plus a REST query surface.

Routes:
    GET  /mcp/sse    -> event stream (``ready`` first, then ``message`` events)
    POST /mcp/sse    -> one JSON-RPC request; the response is returned and
                        broadcast to every open stream
    GET  /health     -> liveness and tool count
    GET  /mcp/tools  -> every registered tool schema
    POST /mcp/query  -> semantic search with optional session re-ranking

Each subscriber gets an unbounded queue and there is no slow-consumer
handling: a client that stops reading accumulates events in memory until
it disconnects.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Set

from loguru import logger
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from ..config import Config
from ..errors import PARSE_ERROR, ProtocolError
from ..registry.formatting import to_mcp_schema
from ..retrieval.session import SessionRanker
from ..rpc.dispatcher import JSONRPC_VERSION, RpcDispatcher

SSE_PATH = "/mcp/sse"


def format_event(name: str, data: Any) -> str:
    """Render one SSE event: ``event: <name>\\ndata: <JSON>\\n\\n``."""
    return f"event: {name}\ndata: {json.dumps(data)}\n\n"


class SubscriberHub:
    """Set of open event streams that responses are broadcast to."""

    def __init__(self) -> None:
        self._subscribers: Set[asyncio.Queue] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        logger.debug(f"SSE subscriber connected ({len(self._subscribers)} open)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        logger.debug(f"SSE subscriber disconnected ({len(self._subscribers)} open)")

    def broadcast(self, name: str, data: Any) -> int:
        """
        Queue an event for every current subscriber.

        Returns:
            Number of subscribers the event was queued for
        """
        payload = format_event(name, data)
        for queue in list(self._subscribers):
            queue.put_nowait(payload)
        return len(self._subscribers)

    async def stream(self) -> AsyncIterator[str]:
        """Yield ``ready`` immediately, then every broadcast until cancelled."""
        queue = self.subscribe()
        try:
            yield format_event("ready", {"ok": True})
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)


class SseTransport:
    """Starlette application bound to one dispatcher and one subscriber hub."""

    def __init__(
        self,
        dispatcher: RpcDispatcher,
        ranker: SessionRanker,
        default_top_k: int = Config.DEFAULT_TOP_K,
    ):
        self.dispatcher = dispatcher
        self.ranker = ranker
        self.default_top_k = default_top_k
        self.hub = SubscriberHub()
        self.app = self._build_app()

    def _build_app(self) -> Starlette:
        @asynccontextmanager
        async def lifespan(app):
            logger.info(f"SSE transport ready on {SSE_PATH}")
            yield
            await self.dispatcher.invoker.close()
            logger.info("SSE transport shutting down")

        routes = [
            Route(SSE_PATH, self.subscribe, methods=["GET"]),
            Route(SSE_PATH, self.submit, methods=["POST"]),
            Route("/health", self.health, methods=["GET"]),
            Route("/mcp/tools", self.list_tools, methods=["GET"]),
            Route("/mcp/query", self.query, methods=["POST"]),
        ]
        return Starlette(routes=routes, lifespan=lifespan)

    async def subscribe(self, request: Request) -> StreamingResponse:
        return StreamingResponse(
            self.hub.stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    async def submit(self, request: Request) -> Response:
        try:
            message = await request.json()
        except (ValueError, UnicodeDecodeError) as e:
            error = ProtocolError(PARSE_ERROR, "Parse error", data=str(e))
            return JSONResponse(
                {"jsonrpc": JSONRPC_VERSION, "id": None, "error": error.to_dict()},
                status_code=400,
            )

        response = await self.dispatcher.handle(message)
        if response is None:
            return Response(status_code=204)

        delivered = self.hub.broadcast("message", response)
        logger.debug(f"Broadcast response id={response.get('id')!r} to {delivered} subscriber(s)")
        return JSONResponse(response)

    async def health(self, request: Request) -> JSONResponse:
        return JSONResponse({"ok": True, "tools": len(self.dispatcher.registry)})

    async def list_tools(self, request: Request) -> JSONResponse:
        tools = self.dispatcher.registry.get_all()
        return JSONResponse({"tools": [to_mcp_schema(tool) for tool in tools]})

    async def query(self, request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except (ValueError, UnicodeDecodeError):
            return JSONResponse({"error": "Request body must be JSON"}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"error": "Request body must be a JSON object"}, status_code=400)

        query = str(body.get("query") or "")
        session_id: Optional[str] = body.get("sessionId") or None
        try:
            top_k = int(body.get("topK") or self.default_top_k)
        except (TypeError, ValueError):
            return JSONResponse({"error": "topK must be an integer"}, status_code=400)

        matches = self.dispatcher.index.search(query, self.dispatcher.embedder, top_k)
        ranked = self.ranker.rank(matches, str(session_id) if session_id else None)
        return JSONResponse({"query": query, "matches": [match.to_dict() for match in ranked]})
