"""Tool invocation: execute a resolved tool according to its invoke descriptor."""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..errors import ToolInvocationError
from ..registry.models import (
    GenericInvoke,
    NoopInvoke,
    SkillInvoke,
    ToolRecord,
    UnsupportedInvoke,
    WebMcpInvoke,
)


def text_result(text: str, *, is_error: bool = False, **metadata: Any) -> Dict[str, Any]:
    """Build an MCP tool result with a single text content block."""
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    metadata = {key: value for key, value in metadata.items() if value is not None}
    if metadata:
        result["metadata"] = metadata
    return result


class ToolInvoker:
    """
    Executes tools over HTTP.

    Upstream failures never raise out of :meth:`call`; they come back as
    ``isError`` results so the JSON-RPC response itself still succeeds.
    """

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                headers={"content-type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, tool: Optional[ToolRecord], args: Dict[str, Any], requested: str = "") -> Dict[str, Any]:
        """
        Invoke ``tool`` with ``args``.

        Args:
            tool: Resolved tool, or None if resolution failed
            args: Tool arguments
            requested: Name or id the client asked for, used in the not-found message

        Returns:
            MCP tool result dict (``content``, optional ``isError`` and ``metadata``)
        """
        if tool is None:
            label = f": {requested}" if requested else ""
            return text_result(f"Tool not found{label}.", is_error=True)

        invoke = tool.invoke
        try:
            if isinstance(invoke, (NoopInvoke, SkillInvoke)):
                return text_result(
                    f"Tool {tool.name} is registered but not remotely invokable.",
                    toolId=tool.id,
                )
            if isinstance(invoke, WebMcpInvoke):
                return await self._call_webmcp(tool, invoke, args)
            if isinstance(invoke, GenericInvoke):
                return await self._call_generic(tool, invoke, args)
            if isinstance(invoke, UnsupportedInvoke):
                return text_result(f"Unsupported invoke type: {invoke.type_name}", is_error=True)
        except ToolInvocationError as e:
            logger.warning(f"Invocation of {tool.name} failed: {e}")
            return text_result(str(e), is_error=True, upstream=e.upstream, status=e.status)

        return text_result(f"Unsupported invoke type: {type(invoke).__name__}", is_error=True)

    async def _call_webmcp(self, tool: ToolRecord, invoke: WebMcpInvoke, args: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {"name": invoke.tool_name or tool.name, "arguments": args},
        }
        response = await self._send("POST", invoke.url, payload, "Upstream call")
        text = response.text or f"Upstream {invoke.url} returned an empty body."
        return text_result(text, status=response.status_code, upstream=invoke.url)

    async def _call_generic(self, tool: ToolRecord, invoke: GenericInvoke, args: Dict[str, Any]) -> Dict[str, Any]:
        payload = {"tool": tool.name, "args": args}
        response = await self._send(invoke.method, invoke.url, payload, "Proxy call")
        return text_result(response.text, status=response.status_code, upstream=invoke.url)

    async def _send(self, method: str, url: str, payload: Dict[str, Any], label: str) -> httpx.Response:
        """
        Issue one HTTP request.

        Raises:
            ToolInvocationError: On network errors, timeouts, or a 4xx/5xx status
        """
        client = self._get_client()
        logger.debug(f"{label}: {method} {url}")
        try:
            response = await client.request(method, url, json=payload)
        except httpx.TimeoutException as e:
            raise ToolInvocationError(
                f"{label} failed: timed out after {self._timeout}s", upstream=url
            ) from e
        except httpx.HTTPError as e:
            raise ToolInvocationError(f"{label} failed: {e}", upstream=url) from e

        if response.is_error:
            raise ToolInvocationError(
                f"{label} failed: {url} returned HTTP {response.status_code}: {response.text}",
                upstream=url,
                status=response.status_code,
            )
        return response
