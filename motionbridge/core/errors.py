"""
Motionbridge server-side exceptions.
"""

from __future__ import annotations

from typing import Any, Optional


class BridgeError(RuntimeError):
    """Base class for bridge errors."""


class SessionNotFoundError(BridgeError):
    """Raised when a session id does not resolve to a live session."""

    def __init__(self, session_id: Optional[str]) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ToolDiscoveryError(BridgeError):
    """Raised when the remote capability query cannot produce descriptors."""


class BackendError(BridgeError):
    """Raised when the device backend returns an error or cannot be reached."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        path: Optional[str] = None,
        payload: Optional[Any] = None,
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        self.method = method
        self.path = path
        self.payload = payload
        target = f" for {method} {path}" if method and path else ""
        if status_code is not None:
            message = f"Backend returned HTTP {status_code}{target}: {detail}"
        else:
            message = f"Backend request failed{target}: {detail}"
        super().__init__(message)


class BackendTimeoutError(BackendError):
    """Raised when a backend request exceeds its bounded timeout."""

    def __init__(self, detail: str, *, method: Optional[str] = None, path: Optional[str] = None) -> None:
        super().__init__(detail, method=method, path=path)
        self.args = (detail,)

    def __str__(self) -> str:
        return self.detail


class CompletionServiceError(BridgeError):
    """Raised when the text-completion service fails; carries the upstream status."""

    def __init__(self, detail: str, *, status_code: int = 502) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Completion service error (status={status_code}): {detail}")
