"""
Tool registry.

Populated once at startup. Discovery against the remote tool bridge is tried
first; any failure commits the static catalog from ``definitions`` instead.
Exactly one provenance is held for the lifetime of the process.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from motionbridge.core.errors import ToolDiscoveryError
from motionbridge.core.types import (
    ParameterKind,
    ParameterRole,
    ParameterSpec,
    Provenance,
    ToolDescriptor,
)

from .definitions import TOOLS_SCHEMAS

logger = logging.getLogger("Motionbridge.mcp.registry")

DiscoverFn = Callable[[], Awaitable[List[Dict[str, Any]]]]

_KINDS = {k.value for k in ParameterKind}


def _parameter_kind(schema: Dict[str, Any]) -> ParameterKind:
    raw = schema.get("type")
    if isinstance(raw, list):
        raw = next((t for t in raw if t != "null"), None)
    if isinstance(raw, str) and raw in _KINDS:
        return ParameterKind(raw)
    return ParameterKind.ANY


def build_descriptor(
    raw: Dict[str, Any],
    provenance: Provenance,
    entity_ref_params: Iterable[str] = ("deviceRef",),
) -> ToolDescriptor:
    """Convert one MCP ``tools/list`` entry into a ToolDescriptor."""
    if not isinstance(raw, dict):
        raise ToolDiscoveryError(f"Tool descriptor is not an object: {raw!r}")
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ToolDiscoveryError("Tool descriptor has no name")

    schema = raw.get("inputSchema") or {"type": "object", "properties": {}}
    if not isinstance(schema, dict):
        raise ToolDiscoveryError(f"Tool {name} has a non-object inputSchema")
    properties = schema.get("properties") or {}
    required = set(schema.get("required") or [])
    if not isinstance(properties, dict):
        raise ToolDiscoveryError(f"Tool {name} has malformed properties")

    entity_refs = set(entity_ref_params)
    parameters = []
    for param_name, param_schema in properties.items():
        param_schema = param_schema if isinstance(param_schema, dict) else {}
        enum = param_schema.get("enum")
        parameters.append(
            ParameterSpec(
                name=param_name,
                kind=_parameter_kind(param_schema),
                required=param_name in required,
                role=ParameterRole.ENTITY_REF if param_name in entity_refs else ParameterRole.VALUE,
                description=param_schema.get("description", ""),
                enum=tuple(enum) if isinstance(enum, list) else None,
                default=param_schema.get("default"),
            )
        )

    return ToolDescriptor(
        name=name,
        description=raw.get("description") or "",
        input_schema=schema,
        parameters=tuple(parameters),
        provenance=provenance,
    )


class ToolRegistry:
    """Read-only catalog of tools once ``populate()`` has completed."""

    def __init__(
        self,
        discover: Optional[DiscoverFn] = None,
        *,
        discovery_timeout: float = 5.0,
        entity_ref_params: Iterable[str] = ("deviceRef",),
        fallback: Optional[List[Dict[str, Any]]] = None,
    ):
        self._discover = discover
        self._discovery_timeout = discovery_timeout
        self._entity_ref_params = tuple(entity_ref_params)
        self._fallback = fallback if fallback is not None else TOOLS_SCHEMAS
        self._tools: Dict[str, ToolDescriptor] = {}
        self._provenance: Optional[Provenance] = None
        self._lock = asyncio.Lock()

    @property
    def provenance(self) -> Optional[Provenance]:
        return self._provenance

    @property
    def populated(self) -> bool:
        return self._provenance is not None

    async def populate(self) -> Provenance:
        async with self._lock:
            if self._provenance is not None:
                return self._provenance

            candidate: Optional[Dict[str, ToolDescriptor]] = None
            provenance = Provenance.DISCOVERED
            if self._discover is not None:
                try:
                    candidate = await asyncio.wait_for(self._discover_descriptors(), self._discovery_timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        "Tool discovery timed out after %.1fs; using fallback catalog",
                        self._discovery_timeout,
                    )
                except Exception as e:
                    logger.warning("Tool discovery failed (%s); using fallback catalog", e)

            if candidate is None:
                provenance = Provenance.FALLBACK
                candidate = self._build(self._fallback, Provenance.FALLBACK)

            self._tools = candidate
            self._provenance = provenance
            logger.info("Tool registry populated with %d %s tools", len(candidate), provenance.value)
            return provenance

    async def _discover_descriptors(self) -> Dict[str, ToolDescriptor]:
        raw_tools = await self._discover()
        if not raw_tools:
            raise ToolDiscoveryError("Remote capability query returned no tools")
        return self._build(raw_tools, Provenance.DISCOVERED)

    def _build(self, raw_tools: List[Dict[str, Any]], provenance: Provenance) -> Dict[str, ToolDescriptor]:
        tools: Dict[str, ToolDescriptor] = {}
        for raw in raw_tools:
            descriptor = build_descriptor(raw, provenance, self._entity_ref_params)
            tools[descriptor.name] = descriptor
        return tools

    def describe(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def list_all(self) -> List[ToolDescriptor]:
        return list(self._tools.values())

    def count(self) -> int:
        return len(self._tools)

    def for_completion(self) -> List[Dict[str, Any]]:
        """Render the catalog as an OpenAI-compatible ``tools`` array."""
        return [
            {
                "type": "function",
                "function": {
                    "name": d.name,
                    "description": d.description,
                    "parameters": d.input_schema,
                },
            }
            for d in self._tools.values()
        ]
