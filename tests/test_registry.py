"""Tests for tool registry population and provenance."""

import asyncio

import pytest

from motionbridge.core.errors import ToolDiscoveryError
from motionbridge.core.types import ParameterKind, ParameterRole, Provenance
from motionbridge.mcp.definitions import TOOLS_SCHEMAS
from motionbridge.mcp.registry import ToolRegistry, build_descriptor

REMOTE_TOOLS = [
    {
        "name": "getCia402State",
        "description": "Read the CiA 402 state machine state.",
        "inputSchema": {
            "type": "object",
            "properties": {"deviceRef": {"type": "string", "description": "Device reference"}},
            "required": ["deviceRef"],
        },
    },
    {
        "name": "ping",
        "description": "Check the backend.",
        "inputSchema": {"type": "object", "properties": {}},
    },
]


def _discover_returning(tools):
    async def discover():
        return tools

    return discover


async def _discover_raising():
    raise ConnectionError("tool bridge down")


@pytest.mark.asyncio
async def test_discovered_catalog_is_committed():
    registry = ToolRegistry(_discover_returning(REMOTE_TOOLS))

    provenance = await registry.populate()

    assert provenance is Provenance.DISCOVERED
    assert registry.count() == 2
    descriptor = registry.describe("getCia402State")
    assert descriptor.provenance is Provenance.DISCOVERED
    assert descriptor.required == ["deviceRef"]
    assert descriptor.parameter("deviceRef").role is ParameterRole.ENTITY_REF
    assert descriptor.parameter("deviceRef").kind is ParameterKind.STRING


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "discover",
    [
        _discover_raising,
        _discover_returning([]),
        _discover_returning([REMOTE_TOOLS[0], {"description": "no name"}]),
        None,
    ],
    ids=["raises", "empty", "one-malformed", "no-discovery"],
)
async def test_any_discovery_failure_commits_only_the_fallback(discover):
    registry = ToolRegistry(discover)

    provenance = await registry.populate()

    assert provenance is Provenance.FALLBACK
    assert registry.count() == len(TOOLS_SCHEMAS)
    assert {d.provenance for d in registry.list_all()} == {Provenance.FALLBACK}


@pytest.mark.asyncio
async def test_slow_discovery_times_out_to_fallback():
    async def slow():
        await asyncio.sleep(5)
        return REMOTE_TOOLS

    registry = ToolRegistry(slow, discovery_timeout=0.05)

    assert await registry.populate() is Provenance.FALLBACK
    assert registry.describe("startDeviceDiscovery") is not None


@pytest.mark.asyncio
async def test_populate_runs_discovery_once():
    calls = []

    async def discover():
        calls.append(1)
        return REMOTE_TOOLS

    registry = ToolRegistry(discover)
    results = await asyncio.gather(registry.populate(), registry.populate(), registry.populate())

    assert results == [Provenance.DISCOVERED] * 3
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_for_completion_renders_function_tools():
    registry = ToolRegistry(_discover_returning(REMOTE_TOOLS))
    await registry.populate()

    rendered = registry.for_completion()

    assert [t["type"] for t in rendered] == ["function", "function"]
    assert rendered[0]["function"]["name"] == "getCia402State"
    assert rendered[0]["function"]["parameters"]["required"] == ["deviceRef"]


def test_build_descriptor_rejects_malformed_entries():
    with pytest.raises(ToolDiscoveryError):
        build_descriptor("not-a-dict", Provenance.DISCOVERED)
    with pytest.raises(ToolDiscoveryError):
        build_descriptor({"name": "x", "inputSchema": "object"}, Provenance.DISCOVERED)


def test_fallback_catalog_marks_device_refs():
    descriptor = build_descriptor(
        next(t for t in TOOLS_SCHEMAS if t["name"] == "startHoming"), Provenance.FALLBACK
    )
    assert descriptor.parameter("deviceRef").role is ParameterRole.ENTITY_REF
    assert "deviceRef" in descriptor.required
