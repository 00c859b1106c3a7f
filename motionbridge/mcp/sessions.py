import asyncio
import logging
import time
from typing import Any, Dict, Optional
from uuid import uuid4

from motionbridge.core.errors import SessionNotFoundError
from motionbridge.core.types import Session

logger = logging.getLogger("Motionbridge.mcp.sessions")


class SessionRegistry:
    """
    Concurrency-safe map from session id to a live Session.

    Insertion and eviction are the only mutations. Ids are uuid4 hex strings
    and nothing is kept for a session once it is destroyed.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def _new_id(self) -> str:
        while True:
            session_id = uuid4().hex
            if session_id not in self._sessions:
                return session_id

    async def create(self, transport: Any) -> Session:
        async with self._lock:
            session = Session(session_id=self._new_id(), created_at=time.time(), transport=transport)
            self._sessions[session.session_id] = session
        logger.info("Session %s created (%d live)", session.session_id, len(self._sessions))
        return session

    async def lookup(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        async with self._lock:
            return self._sessions.get(session_id)

    async def destroy(self, session_id: Optional[str]) -> Session:
        async with self._lock:
            session = self._sessions.pop(session_id, None) if session_id else None
            if session is None:
                raise SessionNotFoundError(session_id)
        logger.info("Session %s destroyed (%d live)", session_id, len(self._sessions))
        return session

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            close = getattr(session.transport, "close", None)
            if close is not None:
                await close()
        if sessions:
            logger.info("Closed %d sessions on shutdown", len(sessions))

    def count(self) -> int:
        return len(self._sessions)
