# tests/unit/mcp/test_tool_registry.py
from __future__ import annotations

import threading
from typing import Any

import pytest

from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.domain.exceptions import ToolDuplicate, ToolInvalid, ToolUnknown
from cloudmcp.mcp.registry import ToolRegistry

SCHEMA = {"type": "object", "properties": {}}


async def _handler(token: Any, arguments: Any) -> ToolResult:
    return ToolResult.text("ok")


def _tool(name: str, description: str = "A perfectly fine tool", schema: Any = None) -> Any:
    return ToolDescriptor(name, description, SCHEMA if schema is None else schema, _handler)


def test_register_lookup_and_sorted_enumeration() -> None:
    registry = ToolRegistry()
    for name in ("hello", "health_check", "version"):
        registry.register(_tool(name))

    assert [d.name for d in registry.enumerate()] == ["health_check", "hello", "version"]
    assert registry.names() == ["health_check", "hello", "version"]
    assert registry.lookup("hello").name == "hello"
    assert len(registry) == 3
    assert "hello" in registry
    assert 42 not in registry


def test_duplicate_name_rejected() -> None:
    registry = ToolRegistry()
    registry.register(_tool("hello"))
    with pytest.raises(ToolDuplicate) as excinfo:
        registry.register(_tool("hello", "A different description"))
    assert excinfo.value.details == {"toolName": "hello"}
    assert registry.count() == 1


def test_unknown_lookup() -> None:
    with pytest.raises(ToolUnknown) as excinfo:
        ToolRegistry().lookup("no_such")
    assert excinfo.value.tool_name == "no_such"


@pytest.mark.parametrize(
    "name",
    ["ab", "Hello", "has space", "_leading", "x" * 51, "dash-name", ""],
)
def test_invalid_names(name: str) -> None:
    with pytest.raises(ToolInvalid) as excinfo:
        ToolRegistry().register(_tool(name))
    assert excinfo.value.details["field"] == "name"


@pytest.mark.parametrize("name", ["abc", "0tool", "x" * 50, "list_instances"])
def test_valid_name_bounds(name: str) -> None:
    registry = ToolRegistry()
    registry.register(_tool(name))
    assert registry.has(name)


@pytest.mark.parametrize("description", ["too short", "d" * 501])
def test_invalid_descriptions(description: str) -> None:
    with pytest.raises(ToolInvalid) as excinfo:
        ToolRegistry().register(_tool("hello", description))
    assert excinfo.value.details["field"] == "description"


@pytest.mark.parametrize(
    "schema",
    [
        {"type": "dictionary"},
        {"type": "object", "default": float("nan")},
        {"type": "object", "default": {1, 2}},
        ["type", "object"],
        [("type", "object")],
        "object",
        42,
    ],
)
def test_invalid_schemas(schema: Any) -> None:
    with pytest.raises(ToolInvalid) as excinfo:
        ToolRegistry().register(_tool("hello", schema=schema))
    assert excinfo.value.details["field"] == "schema"


def test_non_mapping_schema_reaches_the_registry() -> None:
    descriptor = _tool("hello", schema=[("type", "object")])
    assert descriptor.input_schema == [("type", "object")]

    with pytest.raises(ToolInvalid, match="input schema must be an object"):
        ToolRegistry().register(descriptor)


def test_schema_without_root_type_is_accepted() -> None:
    registry = ToolRegistry()
    registry.register(_tool("hello", schema={"properties": {}}))
    assert registry.lookup("hello").schema() == {"properties": {}}


def test_register_all_stops_at_first_failure() -> None:
    registry = ToolRegistry()
    with pytest.raises(ToolInvalid):
        registry.register_all([_tool("alpha"), _tool("BAD"), _tool("gamma")])
    assert registry.names() == ["alpha"]


def test_listed_schema_is_stable_across_calls() -> None:
    registry = ToolRegistry()
    registry.register(_tool("hello"))
    first = registry.enumerate()[0].to_wire()
    first["inputSchema"]["type"] = "string"
    assert registry.enumerate()[0].to_wire()["inputSchema"] == SCHEMA


def test_enumeration_during_concurrent_registration() -> None:
    registry = ToolRegistry()
    names = [f"tool_{i:03d}" for i in range(100)]
    snapshots: list[list[str]] = []

    def writer() -> None:
        for name in names:
            registry.register(_tool(name))

    def reader() -> None:
        for _ in range(50):
            snapshots.append([d.name for d in registry.enumerate()])

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert registry.names() == names
    for snap in snapshots:
        assert snap == sorted(snap)
        assert snap == names[: len(snap)]
