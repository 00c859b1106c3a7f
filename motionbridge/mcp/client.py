"""
Minimal streamable-HTTP MCP client.

Used at startup to query the remote tool bridge for its capability list,
and by the status endpoint to check whether the bridge is reachable.
"""

import itertools
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from motionbridge.core.errors import ToolDiscoveryError
from motionbridge.version import __version__

from .protocol import SESSION_HEADER, SUPPORTED_PROTOCOL_VERSIONS

logger = logging.getLogger("Motionbridge.mcp.client")

_ACCEPT = "application/json, text/event-stream"


def _decode_body(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON-RPC response that may arrive as JSON or as one SSE frame."""
    content_type = response.headers.get("content-type", "")
    if "text/event-stream" in content_type:
        for line in response.text.splitlines():
            if line.startswith("data:"):
                try:
                    return json.loads(line[5:].strip())
                except ValueError as e:
                    raise ToolDiscoveryError(f"Malformed event-stream payload: {e}") from e
        raise ToolDiscoveryError("Event stream carried no data frame")
    try:
        body = response.json()
    except ValueError as e:
        raise ToolDiscoveryError(f"Malformed JSON-RPC payload: {e}") from e
    if not isinstance(body, dict):
        raise ToolDiscoveryError("JSON-RPC payload is not an object")
    return body


class McpHttpClient:
    """One short-lived session against a remote MCP endpoint."""

    def __init__(self, url: str, *, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self.session_id: Optional[str] = None
        self._ids = itertools.count(1)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": _ACCEPT, "Content-Type": "application/json"}
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        return headers

    async def _rpc(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            message["params"] = params
        response = await self._client.post(self.url, json=message, headers=self._headers(), timeout=self.timeout)
        if not response.is_success:
            raise ToolDiscoveryError(f"{method} returned HTTP {response.status_code}")
        body = _decode_body(response)
        if "error" in body:
            error = body["error"] or {}
            raise ToolDiscoveryError(f"{method} failed: {error.get('message', error)}")
        if method == "initialize":
            self.session_id = response.headers.get(SESSION_HEADER) or self.session_id
        return body.get("result")

    async def _notify(self, method: str) -> None:
        message = {"jsonrpc": "2.0", "method": method}
        await self._client.post(self.url, json=message, headers=self._headers(), timeout=self.timeout)

    async def initialize(self) -> Dict[str, Any]:
        result = await self._rpc(
            "initialize",
            {
                "protocolVersion": SUPPORTED_PROTOCOL_VERSIONS[0],
                "capabilities": {},
                "clientInfo": {"name": "motionbridge", "version": __version__},
            },
        )
        if not isinstance(result, dict):
            raise ToolDiscoveryError("initialize returned no result object")
        try:
            await self._notify("notifications/initialized")
        except httpx.HTTPError as e:
            logger.debug("initialized notification failed: %s", e)
        return result

    async def list_tools(self) -> List[Dict[str, Any]]:
        result = await self._rpc("tools/list", {})
        tools = result.get("tools") if isinstance(result, dict) else None
        if not isinstance(tools, list):
            raise ToolDiscoveryError("tools/list returned no tools array")
        return tools

    async def terminate(self) -> None:
        """Best-effort DELETE of the remote session."""
        if not self.session_id:
            return
        try:
            await self._client.delete(self.url, headers=self._headers(), timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.debug("Remote session teardown failed: %s", e)
        finally:
            self.session_id = None

    async def fetch_tools(self) -> List[Dict[str, Any]]:
        """Full round trip: initialize, list tools, tear down."""
        try:
            await self.initialize()
            return await self.list_tools()
        finally:
            await self.terminate()

    async def is_reachable(self) -> bool:
        """Return True when the remote endpoint completes an initialize round trip."""
        try:
            await self.initialize()
            return True
        except (httpx.HTTPError, ToolDiscoveryError) as e:
            logger.debug("MCP endpoint %s unreachable: %s", self.url, e)
            return False
        finally:
            await self.terminate()
