"""Tests for the tool registry and its data models."""

import json

import pytest
import yaml

from vector_mcp.errors import RegistryError
from vector_mcp.registry import to_mcp_schema
from vector_mcp.registry.models import (
    GenericInvoke,
    NoopInvoke,
    SkillInvoke,
    ToolRecord,
    UnsupportedInvoke,
    WebMcpInvoke,
    invoke_from_dict,
    make_tool_id,
)
from vector_mcp.registry.registry import ToolRegistry


class TestToolRecord:
    """Test suite for ToolRecord and invoke descriptors."""

    def test_tool_id_is_stable_hash(self):
        """Tool ids are the first 16 hex chars of sha1(source:name)."""
        tool_id = make_tool_id("tools.json", "task_manager")
        assert tool_id == make_tool_id("tools.json", "task_manager")
        assert len(tool_id) == 16
        assert tool_id != make_tool_id("other.json", "task_manager")

    def test_create_derives_id(self):
        """ToolRecord.create() derives the id from source and name."""
        tool = ToolRecord.create(name="x", description="d", source="s")
        assert tool.id == make_tool_id("s", "x")
        assert tool.category == "general"
        assert isinstance(tool.invoke, NoopInvoke)

    @pytest.mark.parametrize(
        "data, expected",
        [
            (None, NoopInvoke()),
            ({"type": "noop"}, NoopInvoke()),
            ({"type": "skill"}, SkillInvoke()),
            ({"type": "webmcp", "url": "https://w", "tool": "t"}, WebMcpInvoke(url="https://w", tool_name="t")),
            ({"type": "http", "url": "https://g", "method": "put"}, GenericInvoke(url="https://g", method="PUT")),
            ({"url": "https://g"}, GenericInvoke(url="https://g", method="POST")),
            ({"type": "grpc"}, UnsupportedInvoke(type_name="grpc")),
            ({"type": "webmcp"}, UnsupportedInvoke(type_name="webmcp")),
        ],
    )
    def test_invoke_from_dict(self, data, expected):
        """Stored invoke mappings parse into the matching variant."""
        assert invoke_from_dict(data) == expected

    def test_from_dict_accepts_desc_alias(self):
        """Registry entries may use 'desc' for the description."""
        tool = ToolRecord.from_dict({"name": "n", "desc": "short", "source": "s"})
        assert tool.description == "short"
        assert tool.id == make_tool_id("s", "n")

    def test_skill_fields_survive_serialization(self):
        """Skill-format fields are written only for skill tools and read back."""
        tool = ToolRecord.create(
            name="skill",
            description="d",
            source="skills/x",
            invoke=SkillInvoke(),
            skill_format=True,
            markdown_body="body",
            version="1.0",
            dependencies=["git"],
        )
        data = tool.to_dict()

        assert data["skillFormat"] is True
        assert ToolRecord.from_dict(data) == tool
        assert "skillFormat" not in ToolRecord.create(name="p", description="d", source="s").to_dict()

    def test_validate_invariants_rejects_empty_name(self):
        """Tools must have a name."""
        with pytest.raises(RegistryError, match="empty name"):
            ToolRecord(id="x", name="", description="", source="s").validate_invariants()


class TestMcpSchema:
    """Test suite for to_mcp_schema()."""

    def test_plain_tool_schema(self, sample_tools):
        """Schema exposes name, description, inputSchema and metadata."""
        tool = sample_tools[0]
        schema = to_mcp_schema(tool)

        assert schema == {
            "name": "task_manager",
            "description": tool.description,
            "inputSchema": {"type": "object", "properties": {"title": {"type": "string"}}},
            "metadata": {"toolId": tool.id, "category": "productivity", "source": "tools.json"},
        }

    def test_skill_tool_schema_metadata(self, sample_tools):
        """Skill tools add skillFormat, version and dependencies to metadata."""
        metadata = to_mcp_schema(sample_tools[4])["metadata"]
        assert metadata["skillFormat"] is True
        assert metadata["version"] == "1.2.0"
        assert metadata["dependencies"] == ["git"]


class TestToolRegistry:
    """Test suite for ToolRegistry."""

    def test_find_by_id_then_name(self, registry, sample_tools):
        """find() prefers the id and falls back to exact name."""
        weather = sample_tools[2]
        assert registry.find(tool_id=weather.id) is weather
        assert registry.find(tool_id="missing", name="weather") is weather
        assert registry.find(name="Weather") is None
        assert registry.find() is None

    def test_upsert_keeps_order_and_dedupes(self, registry, sample_tools):
        """Upserting an existing id replaces it in place."""
        replacement = ToolRecord(
            id=sample_tools[1].id, name="art_tool", description="new", source="tools.json"
        )
        registry.upsert_many([replacement])

        assert len(registry) == len(sample_tools)
        assert registry.get_all()[1].description == "new"

    def test_remove_by_source_includes_nested_files(self):
        """Removing a source also drops tools from 'source#file' entries."""
        registry = ToolRegistry()
        registry.upsert_many(
            [
                ToolRecord.create(name="a", description="", source="https://git/repo"),
                ToolRecord.create(name="b", description="", source="https://git/repo#skills/b.md"),
                ToolRecord.create(name="c", description="", source="https://git/repo2"),
            ]
        )

        assert registry.remove_by_source("https://git/repo") == 2
        assert [t.name for t in registry.get_all()] == ["c"]

    def test_save_and_load_json(self, tmp_path, sample_tools):
        """A JSON-backed registry round-trips through its file."""
        path = tmp_path / "tools.json"
        registry = ToolRegistry(path)
        registry.replace_source("tools.json", sample_tools)

        loaded = ToolRegistry.from_file(path)

        assert [t.id for t in loaded.get_all()] == [t.id for t in sample_tools]
        assert loaded.get(sample_tools[2].id).invoke == sample_tools[2].invoke
        assert isinstance(json.loads(path.read_text()), list)

    def test_load_yaml(self, tmp_path):
        """YAML registries nest tools under a 'tools' key."""
        path = tmp_path / "tools.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "tools": [
                        {"name": "todo", "description": "Todo list", "source": "yaml", "category": "productivity"},
                        {
                            "name": "remote",
                            "description": "Remote tool",
                            "source": "yaml",
                            "invoke": {"type": "webmcp", "url": "https://r/mcp"},
                        },
                    ]
                }
            )
        )

        registry = ToolRegistry.from_file(path)

        assert [t.name for t in registry.get_all()] == ["todo", "remote"]
        assert registry.find(name="remote").invoke == WebMcpInvoke(url="https://r/mcp")

    def test_missing_file_is_empty(self, tmp_path):
        """A registry whose file does not exist yet is empty."""
        assert len(ToolRegistry.from_file(tmp_path / "none.json")) == 0

    def test_invalid_structure_raises(self, tmp_path):
        """Non-list registries are rejected."""
        path = tmp_path / "tools.json"
        path.write_text(json.dumps({"tools": "nope"}))

        with pytest.raises(RegistryError):
            ToolRegistry.from_file(path)

    def test_entry_without_name_raises_registry_error(self, tmp_path):
        """An entry with an empty name is a malformed registry, not an assertion."""
        path = tmp_path / "tools.json"
        path.write_text(json.dumps([{"name": "ok", "source": "s"}, {"name": "", "source": "s"}]))

        with pytest.raises(RegistryError, match="empty name"):
            ToolRegistry.from_file(path)

    def test_entry_with_bad_params_raises_registry_error(self, tmp_path):
        """Params that cannot form a mapping are rejected."""
        path = tmp_path / "tools.json"
        path.write_text(json.dumps([{"name": "x", "source": "s", "params": [1, 2]}]))

        with pytest.raises(RegistryError):
            ToolRegistry.from_file(path)

    def test_failed_load_keeps_previous_tools(self, tmp_path, sample_tools):
        """A rejected file leaves the in-memory registry untouched."""
        path = tmp_path / "tools.json"
        registry = ToolRegistry(path)
        registry.replace_source("tools.json", sample_tools)
        path.write_text(json.dumps([{"name": "", "source": "s"}]))

        with pytest.raises(RegistryError):
            registry.load()

        assert len(registry) == len(sample_tools)
