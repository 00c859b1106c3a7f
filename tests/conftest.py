"""Shared fixtures: bridge services wired to in-memory httpx transports."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from motionbridge.core.config import BridgeConfig, PollConfig
from motionbridge.services import BridgeServices

Handler = Callable[[httpx.Request], httpx.Response]

DEVICE = {
    "id": 1,
    "deviceAddress": 2045,
    "type": "SOMANET",
    "position": 0,
    "status": "online",
    "hardwareDescription": {
        "device": {"macAddress": "AA:BB:CC:DD:EE:01", "name": "Node 1", "serialNumber": "SN-1001"}
    },
}


class FakeBackend:
    """Scriptable device-control service."""

    def __init__(self, discovery_after: int = 0):
        self.requests: List[httpx.Request] = []
        self.discovery_after = discovery_after
        self.status_calls = 0
        self.overrides: Dict[str, Handler] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.overrides:
            return self.overrides[path](request)
        if path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if path.startswith("/startMaster/discoverDevices/"):
            return httpx.Response(200, json={"started": True})
        if path == "/startMaster/devices/discoveryStatus":
            self.status_calls += 1
            devices = [DEVICE] if self.status_calls > self.discovery_after else []
            return httpx.Response(200, json={"discoveredDevices": devices})
        body = json.loads(request.content) if request.content else None
        return httpx.Response(200, json={"ok": True, "method": request.method, "path": path, "body": body})

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


class FakeCompletion:
    """Scriptable OpenAI-compatible chat completion service."""

    def __init__(self, messages: Optional[List[Dict[str, Any]]] = None, status_code: int = 200):
        self.messages = list(messages or [])
        self.status_code = status_code
        self.bodies: List[Dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.bodies.append(body)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="model not loaded")
        message = self.messages.pop(0) if self.messages else {"role": "assistant", "content": ""}
        return httpx.Response(200, json={"choices": [{"message": message}]})


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def tool_call(call_id: str, name: str, arguments: Any = None) -> Dict[str, Any]:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": raw}}


@pytest.fixture
def bridge_config() -> BridgeConfig:
    config = BridgeConfig()
    config.poll = PollConfig(settle_seconds=0.0, default_timeout_seconds=1.0, default_interval_ms=10)
    config.backend.max_retries = 0
    config.mcp.discovery_timeout_seconds = 1.0
    return config


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_services(bridge_config):
    def _make(
        backend: Optional[Handler] = None,
        completion: Optional[Handler] = None,
        mcp: Optional[Handler] = None,
    ) -> BridgeServices:
        return BridgeServices(
            bridge_config,
            backend_http=httpx.AsyncClient(transport=httpx.MockTransport(backend or FakeBackend())),
            mcp_http=httpx.AsyncClient(transport=httpx.MockTransport(mcp or unreachable)),
            completion_http=httpx.AsyncClient(transport=httpx.MockTransport(completion or FakeCompletion())),
        )

    return _make
