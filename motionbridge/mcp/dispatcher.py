"""
Tool dispatcher.

Resolves a tool call to one backend request, runs the argument guard first,
and normalizes every outcome into a ToolCallResult. ``dispatch`` never
raises; backend failures, timeouts and unexpected errors all come back as
``success=False`` results.
"""

import asyncio
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from motionbridge.core.config import PollConfig
from motionbridge.core.errors import BackendError
from motionbridge.core.types import ToolCallRequest, ToolCallResult, ToolDescriptor

from .backend import BackendClient
from .guard import ArgumentGuard
from .poller import poll_until
from .registry import ToolRegistry
from .routes import BODY_REMAINING, EndpointSpec, PollSpec, resolve_route

logger = logging.getLogger("Motionbridge.mcp.dispatcher")

_PATH_PARAM = re.compile(r"\{(\w+)\}")


def path_params(template: str) -> Tuple[str, ...]:
    return tuple(_PATH_PARAM.findall(template))


def build_request(spec: EndpointSpec, args: Dict[str, Any]) -> Tuple[str, Any]:
    """Return ``(path, body)`` for an endpoint and its arguments."""
    path = spec.path
    used = set()
    for name in path_params(spec.path):
        value = args.get(name)
        if value is None:
            raise ValueError(f"Missing path parameter: {name}")
        path = path.replace("{" + name + "}", quote(str(value), safe=""))
        used.add(name)

    query = [(name, args[name]) for name in spec.query if args.get(name) is not None]
    if query:
        path = f"{path}?{urlencode(query)}"
        used.update(name for name, _ in query)

    body: Any = None
    field = spec.body_field
    if field:
        body = args.get(field) or {}
    elif spec.body == BODY_REMAINING:
        body = {k: v for k, v in args.items() if k not in used and v is not None}
    return path, body


def _shape_devices(devices: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    shaped = []
    for device in devices:
        hardware = (device.get("hardwareDescription") or {}).get("device") or {}
        shaped.append(
            {
                "id": device.get("id"),
                "deviceAddress": device.get("deviceAddress"),
                "type": device.get("type"),
                "position": device.get("position"),
                "status": device.get("status"),
                "macAddress": hardware.get("macAddress"),
                "name": hardware.get("name"),
                "serialNumber": hardware.get("serialNumber"),
            }
        )
    return shaped


def _discovered(status: Any) -> List[Dict[str, Any]]:
    if isinstance(status, dict):
        devices = status.get("discoveredDevices")
        if isinstance(devices, list):
            return devices
    return []


class ToolDispatcher:
    """Turns ToolCallRequests into backend calls. Holds no per-call state."""

    def __init__(
        self,
        registry: ToolRegistry,
        backend: BackendClient,
        guard: Optional[ArgumentGuard] = None,
        poll_config: Optional[PollConfig] = None,
    ):
        self.registry = registry
        self.backend = backend
        self.guard = guard or ArgumentGuard()
        self.poll_config = poll_config or PollConfig()

    async def dispatch(self, request: ToolCallRequest) -> ToolCallResult:
        started = time.monotonic()
        try:
            result = await self._dispatch(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Unexpected error dispatching %s", request.tool_name)
            result = self._failure(request, f"Unexpected error running {request.tool_name}: {e}")
        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.info(
            "tool=%s call_id=%s outcome=%s elapsed_ms=%.1f",
            request.tool_name,
            request.call_id,
            "ok" if result.success else ("rejected" if result.rejected else "error"),
            elapsed_ms,
        )
        return result

    async def _dispatch(self, request: ToolCallRequest) -> ToolCallResult:
        descriptor = self.registry.describe(request.tool_name)
        if descriptor is None:
            return self._failure(request, f"Unknown tool: {request.tool_name}", rejected=True)

        args = dict(request.arguments or {})
        rejection = self.guard.validate(descriptor, args)
        if rejection:
            return self._failure(request, rejection.message, hint=rejection.hint, rejected=True)

        spec = resolve_route(descriptor.name)
        if spec is None:
            return self._failure(request, f"No backend route for tool: {descriptor.name}")

        try:
            path, body = build_request(spec, args)
        except ValueError as e:
            return self._failure(request, str(e), rejected=True)

        try:
            payload = await self.backend.request(spec.method, path, json_body=body, retry=spec.retryable)
            if spec.poll is not None:
                payload = await self._run_poll(descriptor, spec.poll, args)
        except BackendError as e:
            logger.warning("Backend call for %s failed: %s", descriptor.name, e)
            return self._failure(request, str(e))

        return ToolCallResult(
            tool_name=request.tool_name,
            success=True,
            result=payload,
            call_id=request.call_id,
        )

    async def _run_poll(self, descriptor: ToolDescriptor, poll: PollSpec, args: Dict[str, Any]) -> Dict[str, Any]:
        timeout = args.get(poll.timeout_param) or self.poll_config.default_timeout_seconds
        interval_ms = args.get(poll.interval_param) or self.poll_config.default_interval_ms

        async def status() -> Any:
            return await self.backend.request("GET", poll.status_path, retry=True)

        async def run() -> Any:
            if self.poll_config.settle_seconds > 0:
                await asyncio.sleep(self.poll_config.settle_seconds)
            return await poll_until(
                status,
                lambda result: bool(_discovered(result)),
                timeout=float(timeout),
                interval=float(interval_ms) / 1000.0,
                target=descriptor.name,
            )

        # The poll runs to completion even if the caller goes away.
        task = asyncio.ensure_future(run())
        outcome = await asyncio.shield(task)

        devices = _discovered(outcome.result)
        return {
            "status": "timeout" if outcome.timed_out else "success",
            "macAddress": args.get("macAddress"),
            "devicesFound": len(devices),
            "elapsedSeconds": round(outcome.elapsed, 2),
            "polls": outcome.polls,
            "timedOut": outcome.timed_out,
            "devices": _shape_devices(devices),
        }

    @staticmethod
    def _failure(
        request: ToolCallRequest,
        error: str,
        *,
        hint: Optional[str] = None,
        rejected: bool = False,
    ) -> ToolCallResult:
        return ToolCallResult(
            tool_name=request.tool_name,
            success=False,
            error=error,
            hint=hint,
            call_id=request.call_id,
            rejected=rejected,
        )
