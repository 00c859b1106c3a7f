"""
Service wiring for the bridge.

``BridgeServices`` constructs every collaborator once at process start and
tears them down at process stop. The FastAPI app keeps the instance on
``app.state.services``; nothing reaches it through module globals.
"""

import logging
from typing import List, Optional

import httpx

from motionbridge.chat.completion import CompletionClient
from motionbridge.chat.orchestrator import TwoPhaseOrchestrator
from motionbridge.core.config import BridgeConfig
from motionbridge.core.types import Provenance
from motionbridge.mcp.backend import BackendClient
from motionbridge.mcp.client import McpHttpClient
from motionbridge.mcp.dispatcher import ToolDispatcher
from motionbridge.mcp.guard import ArgumentGuard
from motionbridge.mcp.handlers import SessionTransport
from motionbridge.mcp.registry import ToolRegistry
from motionbridge.mcp.sessions import SessionRegistry

logger = logging.getLogger("Motionbridge.services")


class BridgeServices:
    def __init__(
        self,
        config: BridgeConfig,
        *,
        backend_http: Optional[httpx.AsyncClient] = None,
        mcp_http: Optional[httpx.AsyncClient] = None,
        completion_http: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self._backend_http = backend_http or httpx.AsyncClient(
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        self._mcp_http = mcp_http or httpx.AsyncClient()
        self._completion_http = completion_http or httpx.AsyncClient()

        self.backend = BackendClient(
            config.backend.base_url,
            timeout=config.backend.timeout_seconds,
            max_retries=config.backend.max_retries,
            client=self._backend_http,
        )
        self.registry = ToolRegistry(
            self.discover_tools,
            discovery_timeout=config.mcp.discovery_timeout_seconds,
            entity_ref_params=config.guard.entity_ref_params,
        )
        self.guard = ArgumentGuard(config.guard.extra_placeholder_patterns)
        self.dispatcher = ToolDispatcher(self.registry, self.backend, self.guard, config.poll)
        self.sessions = SessionRegistry()
        self.completion = CompletionClient(config.completion, client=self._completion_http)
        self.orchestrator = TwoPhaseOrchestrator(self.completion, self.registry, self.dispatcher)
        self.startup_warnings: List[str] = []

    def mcp_client(self) -> McpHttpClient:
        return McpHttpClient(
            self.config.mcp.discovery_url,
            timeout=self.config.mcp.discovery_timeout_seconds,
            client=self._mcp_http,
        )

    async def discover_tools(self):
        return await self.mcp_client().fetch_tools()

    async def check_tool_bridge(self) -> bool:
        return await self.mcp_client().is_reachable()

    def new_transport(self) -> SessionTransport:
        return SessionTransport(
            self.registry,
            self.dispatcher,
            server_name=self.config.mcp.server_name,
            startup_warnings=self.startup_warnings,
        )

    async def start(self) -> None:
        provenance = await self.registry.populate()
        if provenance == Provenance.FALLBACK:
            self.startup_warnings.append(
                f"Remote tool bridge at {self.config.mcp.discovery_url} was unavailable; using built-in tool catalog"
            )
        logger.info(
            "Bridge services ready (backend=%s, tools=%d, provenance=%s)",
            self.config.backend.base_url,
            self.registry.count(),
            provenance.value,
        )

    async def close(self) -> None:
        await self.sessions.close_all()
        for client in (self._backend_http, self._mcp_http, self._completion_http):
            await client.aclose()
        logger.info("Bridge services closed")
