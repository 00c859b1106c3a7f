"""
Motionbridge Python SDK client.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from motionbridge.sdk.errors import MotionbridgeAPIError, MotionbridgeConnectionError, MotionbridgeToolError

DEFAULT_BASE_URL = os.environ.get("MOTIONBRIDGE_SERVER_URL", "http://localhost:8040")


def _normalize_base_url(base_url: str) -> str:
    value = base_url.rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid Motionbridge base URL: {base_url!r}")
    return value


def _coerce_error_detail(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "detail"):
            detail = payload.get(key)
            if isinstance(detail, str):
                return detail
            if detail is not None:
                try:
                    return json.dumps(detail, sort_keys=True)
                except (TypeError, ValueError):
                    return str(detail)
    if isinstance(payload, str) and payload:
        return payload
    return fallback


class MotionbridgeClient:
    """
    Synchronous SDK for the Motionbridge chat surface.

    Usage:
        from motionbridge.sdk import MotionbridgeClient
        client = MotionbridgeClient()
        reply = client.chat("Which devices are on AA:BB:CC:DD:EE:FF?")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 180.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = _normalize_base_url(base_url)
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "MotionbridgeClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(path)
        try:
            response = self._session.request(
                method=method,
                url=url,
                json=json_body,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise MotionbridgeConnectionError(
                f"Failed to connect to Motionbridge server at {self.base_url}: {exc}"
            ) from exc

        payload: Any
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
        else:
            payload = {}

        if response.status_code >= 400:
            detail = _coerce_error_detail(payload, f"HTTP {response.status_code} error")
            raise MotionbridgeAPIError(detail, status_code=response.status_code, path=path, payload=payload)
        if isinstance(payload, dict) and payload.get("success") is False:
            detail = _coerce_error_detail(payload, "Motionbridge API returned success=false")
            raise MotionbridgeAPIError(detail, status_code=response.status_code, path=path, payload=payload)
        return payload

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def chat(self, question: str, history: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
        if not question or not question.strip():
            raise ValueError("'question' must be a non-empty string.")
        return self._request(
            "POST",
            "/api/llm/chat-with-mcp-tools",
            json_body={"question": question, "conversationHistory": history or []},
        )

    def list_tools(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/llm/list-tools").get("tools", [])

    def mcp_status(self) -> Dict[str, Any]:
        return self._request("GET", "/api/llm/mcp-status")

    def execute_tool(self, tool_name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run one tool directly. Raises MotionbridgeToolError when the bridge
        rejects the arguments or the backend call fails.
        """
        try:
            payload = self._request(
                "POST",
                "/api/llm/execute-tool",
                json_body={"toolName": tool_name, "args": args or {}},
            )
        except MotionbridgeAPIError as exc:
            body = exc.payload
            if not isinstance(body, dict) or "tool" not in body:
                raise
            hint = body.get("hint")
            raise MotionbridgeToolError(
                exc.detail,
                tool=str(body["tool"]),
                hint=hint if isinstance(hint, str) else None,
                status_code=exc.status_code,
                path=exc.path,
                payload=body,
            ) from exc
        return payload.get("result")
