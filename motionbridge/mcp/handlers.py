"""
Per-session MCP message handling.

Each Session owns one ``SessionTransport``. It answers JSON-RPC requests
for that session and fans server-initiated notifications out to the
session's push streams.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from motionbridge.core.types import ToolCallRequest
from motionbridge.version import __version__

from .dispatcher import ToolDispatcher
from .protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    jsonrpc_error,
    jsonrpc_notification,
    jsonrpc_result,
    negotiate_protocol_version,
)
from .registry import ToolRegistry
from .utils import build_initialize_instructions, format_tool_result_text

logger = logging.getLogger("Motionbridge.mcp.handlers")

_CLOSED = object()


class SessionTransport:
    """Request handler and push-stream hub for one session."""

    def __init__(
        self,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        *,
        server_name: str = "motionbridge",
        startup_warnings: Optional[List[str]] = None,
    ):
        self.registry = registry
        self.dispatcher = dispatcher
        self.server_name = server_name
        self.startup_warnings = list(startup_warnings or [])
        self.session_id: Optional[str] = None
        self.negotiated = False
        self.initialized = False
        self.protocol_version: Optional[str] = None
        self.client_info: Dict[str, Any] = {}
        self.closed = False
        self._subscribers: List[asyncio.Queue] = []

    # --- push streams ---

    def publish(self, message: Dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(message)

    def log(self, level: str, data: Any) -> None:
        self.publish(
            jsonrpc_notification(
                "notifications/message",
                {"level": level, "logger": self.server_name, "data": data},
            )
        )

    async def subscribe(self, keepalive: Optional[float] = None) -> AsyncIterator[Optional[Dict[str, Any]]]:
        """
        Yield notifications until the session is closed.

        When ``keepalive`` is set, ``None`` is yielded after that many idle
        seconds so the caller can emit a keep-alive frame.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while not self.closed:
                try:
                    item = await asyncio.wait_for(queue.get(), keepalive)
                except asyncio.TimeoutError:
                    yield None
                    continue
                if item is _CLOSED:
                    break
                yield item
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for queue in list(self._subscribers):
            queue.put_nowait(_CLOSED)
        logger.debug("Transport for session %s closed", self.session_id)

    # --- request handling ---

    async def handle(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Handle one JSON-RPC message. Notifications return None."""
        method = message.get("method")
        msg_id = message.get("id")
        params = message.get("params") or {}
        is_notification = "id" not in message

        if is_notification:
            if method == "notifications/initialized":
                self.initialized = True
            elif method == "notifications/cancelled":
                logger.debug("Client cancelled request in session %s: %s", self.session_id, params)
            else:
                logger.debug("Ignoring notification %s", method)
            return None

        if not isinstance(params, dict):
            return jsonrpc_error(msg_id, INVALID_PARAMS, "params must be an object")

        if method == "initialize":
            return self._handle_initialize(msg_id, params)
        if method == "ping":
            return jsonrpc_result(msg_id, {})
        if method == "tools/list":
            return jsonrpc_result(msg_id, {"tools": [d.to_mcp() for d in self.registry.list_all()]})
        if method == "tools/call":
            return await self._handle_call_tool(msg_id, params)
        return jsonrpc_error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def _handle_initialize(self, msg_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.negotiated:
            return jsonrpc_error(msg_id, INVALID_REQUEST, "Session is already initialized")

        requested_version = params.get("protocolVersion")
        negotiated_version = negotiate_protocol_version(requested_version)
        if not negotiated_version:
            return jsonrpc_error(msg_id, INVALID_PARAMS, f"Unsupported protocol version {requested_version}")

        self.negotiated = True
        self.protocol_version = negotiated_version
        client_info = params.get("clientInfo")
        self.client_info = client_info if isinstance(client_info, dict) else {}
        logger.info(
            "Session %s initialized (protocol=%s, client=%s)",
            self.session_id,
            negotiated_version,
            self.client_info.get("name", "unknown"),
        )
        return jsonrpc_result(
            msg_id,
            {
                "protocolVersion": negotiated_version,
                "capabilities": {"tools": {"listChanged": False}, "logging": {}},
                "serverInfo": {"name": self.server_name, "version": __version__},
                "instructions": build_initialize_instructions(self.registry.count(), self.startup_warnings),
            },
        )

    async def _handle_call_tool(self, msg_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name.strip():
            return jsonrpc_error(msg_id, INVALID_PARAMS, "tools/call requires a tool name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return jsonrpc_error(msg_id, INVALID_PARAMS, "tools/call arguments must be an object")

        self.log("info", {"event": "tool_started", "tool": name, "requestId": msg_id})
        result = await self.dispatcher.dispatch(
            ToolCallRequest(tool_name=name, arguments=arguments, call_id=str(msg_id))
        )
        self.log(
            "info" if result.success else "warning",
            {"event": "tool_finished", "tool": name, "requestId": msg_id, "success": result.success},
        )

        payload: Dict[str, Any] = {
            "content": [{"type": "text", "text": format_tool_result_text(result)}],
            "isError": not result.success,
        }
        if result.success:
            payload["structuredContent"] = (
                result.result if isinstance(result.result, dict) else {"result": result.result}
            )
        else:
            payload["structuredContent"] = result.to_payload()
        return jsonrpc_result(msg_id, payload)
