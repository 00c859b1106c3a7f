"""
MCP Transport Multiplexer
=========================
One endpoint, ``/mcp``, branching by verb and session header:

  POST   /mcp  (no session header, initialize)   create a session
  POST   /mcp  (mcp-session-id)                  forward a JSON-RPC message
  GET    /mcp  (mcp-session-id)                  server-push event stream
  DELETE /mcp  (mcp-session-id)                  terminate the session

Any non-initialize exchange whose session id does not resolve answers
HTTP 400 with a JSON-RPC session-not-found error and touches no state.
"""

import json
import logging
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from motionbridge.core.errors import SessionNotFoundError
from motionbridge.core.types import Session

from .handlers import SessionTransport
from .protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    PROTOCOL_VERSION_HEADER,
    SESSION_HEADER,
    SESSION_NOT_FOUND,
    jsonrpc_error,
)

logger = logging.getLogger("Motionbridge.mcp.transport")

mcp_router = APIRouter(tags=["mcp"])


def _services(request: Request):
    return request.app.state.services


def _session_not_found() -> JSONResponse:
    return JSONResponse(status_code=400, content=jsonrpc_error(None, SESSION_NOT_FOUND, "Session not found"))


def _session_headers(session: Session) -> dict:
    headers = {SESSION_HEADER: session.session_id}
    transport = session.transport
    if isinstance(transport, SessionTransport) and transport.protocol_version:
        headers[PROTOCOL_VERSION_HEADER] = transport.protocol_version
    return headers


@mcp_router.post("/mcp")
async def mcp_post(request: Request) -> Response:
    services = _services(request)
    try:
        message: Any = json.loads(await request.body())
    except ValueError:
        return JSONResponse(status_code=400, content=jsonrpc_error(None, PARSE_ERROR, "Parse error"))
    if not isinstance(message, dict) or not isinstance(message.get("method"), str):
        msg_id = message.get("id") if isinstance(message, dict) else None
        return JSONResponse(
            status_code=400,
            content=jsonrpc_error(msg_id, INVALID_REQUEST, "Invalid Request: expected a JSON-RPC object with a method"),
        )

    session_id = request.headers.get(SESSION_HEADER)
    if not session_id:
        if message["method"] != "initialize":
            return _session_not_found()
        return await _initialize(services, message)

    session = await services.sessions.lookup(session_id)
    if session is None:
        return _session_not_found()

    try:
        response = await session.transport.handle(message)
    except Exception:
        logger.exception("Transport failure in session %s; evicting", session_id)
        await _evict(services, session_id)
        return JSONResponse(
            status_code=500,
            content=jsonrpc_error(message.get("id"), INTERNAL_ERROR, "Internal error"),
        )

    if response is None:
        return Response(status_code=202, headers=_session_headers(session))
    return JSONResponse(content=response, headers=_session_headers(session))


async def _initialize(services, message: dict) -> Response:
    transport: SessionTransport = services.new_transport()
    response = await transport.handle(message)
    if response is None or "error" in response:
        # A failed initialize never creates a session.
        return JSONResponse(status_code=400, content=response or jsonrpc_error(None, INVALID_REQUEST, "Invalid Request"))
    session = await services.sessions.create(transport)
    transport.session_id = session.session_id
    return JSONResponse(content=response, headers=_session_headers(session))


async def _evict(services, session_id: str) -> Optional[Session]:
    try:
        session = await services.sessions.destroy(session_id)
    except SessionNotFoundError:
        return None
    await session.transport.close()
    return session


@mcp_router.get("/mcp")
async def mcp_stream(request: Request) -> Response:
    services = _services(request)
    session = await services.sessions.lookup(request.headers.get(SESSION_HEADER))
    if session is None:
        return _session_not_found()

    transport: SessionTransport = session.transport
    keepalive = services.config.mcp.sse_keepalive_seconds

    async def events() -> AsyncIterator[str]:
        logger.info("Push stream opened for session %s", session.session_id)
        try:
            async for item in transport.subscribe(keepalive=keepalive):
                if item is None:
                    yield ": keep-alive\n\n"
                else:
                    yield f"event: message\ndata: {json.dumps(item)}\n\n"
        finally:
            logger.info("Push stream closed for session %s", session.session_id)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={**_session_headers(session), "Cache-Control": "no-cache"},
    )


@mcp_router.delete("/mcp")
async def mcp_terminate(request: Request) -> Response:
    services = _services(request)
    session_id = request.headers.get(SESSION_HEADER)
    session = await _evict(services, session_id) if session_id else None
    if session is None:
        return _session_not_found()
    return JSONResponse(content={"sessionId": session.session_id, "terminated": True})
