import asyncio
import logging
from typing import Any, Optional

import httpx

from motionbridge.core.errors import BackendError, BackendTimeoutError

logger = logging.getLogger("Motionbridge.mcp.backend")


def parse_payload(response: httpx.Response) -> Any:
    """Decode a backend response body as JSON, falling back to opaque text."""
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


def _error_detail(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message", "detail", "raw"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(payload, str) and payload:
        return payload
    return fallback


class BackendClient:
    """Async client for the device-control service with bounded timeouts."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        max_retries: int = 1,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        retry: bool = False,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Issue one backend call and return its parsed payload.

        Connection failures are retried only when ``retry`` is set. 4xx responses
        are returned as errors immediately and never retried.
        """
        effective_timeout = timeout if timeout is not None else self.timeout
        attempts = (self.max_retries + 1) if retry else 1
        url = self.url(path)
        kwargs = {"timeout": effective_timeout}
        if json_body is not None:
            kwargs["json"] = json_body

        last_err: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                raise BackendTimeoutError(
                    f"Backend request timed out after {effective_timeout}s: {method} {path}",
                    method=method,
                    path=path,
                ) from e
            except httpx.TransportError as e:
                last_err = e
                if attempt < attempts - 1:
                    logger.debug("Backend connection failed (%s %s), retrying: %s", method, path, e)
                    await asyncio.sleep(0.5 * (attempt + 1))
                continue

            payload = parse_payload(response)
            if response.is_success:
                return payload
            raise BackendError(
                _error_detail(payload, response.reason_phrase or f"HTTP {response.status_code}"),
                status_code=response.status_code,
                method=method,
                path=path,
                payload=payload,
            )

        raise BackendError(str(last_err) or type(last_err).__name__, method=method, path=path)
