"""
Motionbridge SDK exceptions.
"""

from __future__ import annotations

from typing import Any, Optional


class MotionbridgeError(RuntimeError):
    """Base class for SDK errors."""


class MotionbridgeConnectionError(MotionbridgeError):
    """Raised when the SDK cannot reach the Motionbridge server."""


class MotionbridgeAPIError(MotionbridgeError):
    """Raised when the server returns an HTTP or API-level error."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        payload: Optional[Any] = None,
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        self.path = path
        self.payload = payload
        status_hint = f" (status={status_code})" if status_code is not None else ""
        path_hint = f" [{path}]" if path else ""
        super().__init__(f"{detail}{status_hint}{path_hint}")


class MotionbridgeToolError(MotionbridgeAPIError):
    """
    Raised when the bridge refuses or fails a direct tool call.

    ``hint`` carries the bridge's advice for rejected arguments, such as a
    placeholder device reference, and is None for backend failures.
    """

    def __init__(self, detail: str, *, tool: str, hint: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(detail, **kwargs)
        self.tool = tool
        self.hint = hint
