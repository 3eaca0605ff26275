"""Pytest fixtures and test utilities for the VectorMCP test suite."""

import io
import json
from typing import Callable

import httpx
import pytest

from vector_mcp.registry.models import (
    GenericInvoke,
    NoopInvoke,
    SkillInvoke,
    ToolRecord,
    UnsupportedInvoke,
    WebMcpInvoke,
)
from vector_mcp.registry.registry import ToolRegistry
from vector_mcp.retrieval.embedder import HashingEmbedder
from vector_mcp.retrieval.index import VectorIndex
from vector_mcp.rpc.dispatcher import RpcDispatcher
from vector_mcp.rpc.invocation import ToolInvoker


# ============================================================================
# TOOL FIXTURES
# ============================================================================


@pytest.fixture
def sample_tools():
    """
    Create a small, varied tool set.

    Returns:
        List of ToolRecords covering every invoke descriptor variant
    """
    return [
        ToolRecord.create(
            name="task_manager",
            description="Manage tasks todo reminders productivity",
            source="tools.json",
            category="productivity",
            params={"title": {"type": "string"}},
        ),
        ToolRecord.create(
            name="art_tool",
            description="Image generation art prompt",
            source="tools.json",
            category="creative",
        ),
        ToolRecord.create(
            name="weather",
            description="Current weather forecast for a city",
            source="https://example.com/mcp",
            category="web",
            invoke=WebMcpInvoke(url="https://example.com/mcp", tool_name="get_weather"),
        ),
        ToolRecord.create(
            name="send_email",
            description="Send email messages to recipients",
            source="https://api.example.com",
            category="communication",
            invoke=GenericInvoke(url="https://api.example.com/email", method="POST"),
        ),
        ToolRecord.create(
            name="code_review",
            description="Review pull requests",
            source="skills/code_review",
            category="dev",
            invoke=SkillInvoke(),
            skill_format=True,
            markdown_body="# Code review\n\nCheck   style,\n tests and docs.",
            version="1.2.0",
            dependencies=["git"],
        ),
        ToolRecord.create(
            name="legacy_rpc",
            description="Legacy tool with an unknown invoke type",
            source="legacy.json",
            invoke=UnsupportedInvoke(type_name="grpc"),
        ),
    ]


@pytest.fixture
def registry(sample_tools):
    """Registry populated with sample tools (not bound to a file)."""
    registry = ToolRegistry()
    registry.upsert_many(sample_tools)
    return registry


@pytest.fixture
def embedder():
    """Embedder with the small dimension used across the suite."""
    return HashingEmbedder(64)


@pytest.fixture
def index(tmp_path, registry, embedder):
    """Vector index built from the sample registry, snapshot under tmp_path."""
    index = VectorIndex(tmp_path / "index.json")
    index.rebuild(registry.get_all(), embedder)
    return index


# ============================================================================
# HTTP MOCK FIXTURES
# ============================================================================


@pytest.fixture
def upstream_requests():
    """List that records every request seen by the mock upstream."""
    return []


@pytest.fixture
def make_invoker(upstream_requests) -> Callable[..., ToolInvoker]:
    """
    Factory for ToolInvokers backed by httpx.MockTransport.

    Args (of the returned factory):
        handler: Optional ``httpx.Request -> httpx.Response``; defaults to
            echoing the request JSON with status 200
    """

    def _echo(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=json.dumps({"echo": json.loads(request.content)}))

    def _factory(handler=None) -> ToolInvoker:
        def _recording(request: httpx.Request) -> httpx.Response:
            upstream_requests.append(request)
            return (handler or _echo)(request)

        return ToolInvoker(timeout=5.0, transport=httpx.MockTransport(_recording))

    return _factory


@pytest.fixture
def dispatcher(registry, index, embedder, make_invoker):
    """RpcDispatcher over the sample registry with a mocked upstream."""
    return RpcDispatcher(
        registry=registry,
        index=index,
        embedder=embedder,
        invoker=make_invoker(),
        list_top_k=10,
    )


@pytest.fixture
def output_stream():
    """In-memory binary stream standing in for stdout."""
    return io.BytesIO()
