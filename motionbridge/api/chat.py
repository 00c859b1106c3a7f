"""
Chat Surface: FastAPI Router
=============================
HTTP API for chat clients, exposing:

  POST   /api/llm/chat-with-mcp-tools   two-phase completion with tool calls
  GET    /api/llm/list-tools            registered tool catalog
  GET    /api/llm/mcp-status            tool bridge reachability and tool count
  POST   /api/llm/execute-tool          run one tool directly, without the model

Collaborators are read from ``request.app.state.services``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from motionbridge.core.errors import CompletionServiceError
from motionbridge.core.types import ChatRole, ChatTurn, ToolCallRequest

logger = logging.getLogger("Motionbridge.api.chat")

chat_router = APIRouter(prefix="/api/llm", tags=["chat"])


class HistoryMessage(BaseModel):
    role: ChatRole
    content: str = ""


class ChatRequest(BaseModel):
    question: str
    conversationHistory: List[HistoryMessage] = Field(default_factory=list)


class ExecuteToolRequest(BaseModel):
    toolName: str = Field(min_length=1)
    args: Dict[str, Any] = Field(default_factory=dict)


def _services(request: Request):
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Bridge services not initialized")
    return services


@chat_router.post("/chat-with-mcp-tools")
async def chat_with_tools(req: ChatRequest, request: Request):
    """Answer a question, invoking tools when the model asks for them."""
    services = _services(request)
    if not req.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")

    history = [ChatTurn(role=m.role, content=m.content) for m in req.conversationHistory]
    try:
        result = await services.orchestrator.converse(history, ChatTurn(role=ChatRole.USER, content=req.question))
    except CompletionServiceError as e:
        logger.error("Chat request failed: %s", e)
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.detail})

    return {
        "success": True,
        "answer": result.answer,
        "toolsUsed": result.tools_used,
        "debug": {
            "requestModel": result.model,
            "toolsAvailable": services.registry.count(),
            "toolsRequested": result.tool_calls_requested,
            "toolsCalled": len(result.tools_used),
            "toolTurns": [turn.to_message() for turn in result.tool_turns],
        },
    }


@chat_router.get("/list-tools")
async def list_tools(request: Request):
    services = _services(request)
    tools = [d.to_mcp() for d in services.registry.list_all()]
    provenance = services.registry.provenance
    return {
        "tools": tools,
        "count": len(tools),
        "provenance": provenance.value if provenance else None,
    }


@chat_router.get("/mcp-status")
async def mcp_status(request: Request):
    """Report whether the remote tool bridge answers and how many tools are registered."""
    services = _services(request)
    available = await services.check_tool_bridge()
    provenance = services.registry.provenance
    return {
        "mcpServerAvailable": available,
        "baseUrl": services.config.backend.base_url,
        "discoveryUrl": services.config.mcp.discovery_url,
        "provenance": provenance.value if provenance else None,
        "toolsAvailable": services.registry.count(),
        "tools": [{"name": d.name, "description": d.description} for d in services.registry.list_all()],
    }


@chat_router.post("/execute-tool")
async def execute_tool(req: ExecuteToolRequest, request: Request):
    services = _services(request)
    result = await services.dispatcher.dispatch(ToolCallRequest(tool_name=req.toolName, arguments=req.args))
    if not result.success:
        content: Dict[str, Any] = {"success": False, "tool": req.toolName, "error": result.error}
        if result.hint:
            content["hint"] = result.hint
        return JSONResponse(status_code=400, content=content)
    return {"success": True, "tool": req.toolName, "result": result.result}
