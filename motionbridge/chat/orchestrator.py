"""
Two-phase completion orchestrator.

Phase one sends the conversation and the tool catalog to the completion
service. When it asks for tools, every requested call is dispatched in
order, the results are folded back in as tool turns, and phase two
produces the final answer. The second call is only issued once every
dispatch has resolved.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from motionbridge.core.types import ChatRole, ChatTurn, ToolCallRequest, ToolCallResult
from motionbridge.mcp.dispatcher import ToolDispatcher
from motionbridge.mcp.registry import ToolRegistry
from motionbridge.mcp.utils import format_result_value

from .completion import CompletionClient

logger = logging.getLogger("Motionbridge.chat.orchestrator")

NO_RESPONSE = "No response generated"

SYSTEM_PROMPT = (
    "You are a servo-drive assistant connected to a motion-control bridge. "
    "You have access to device control tools.\n\n"
    "TOOL CALLING RULES:\n"
    "1. Required parameters MUST have values explicitly provided by the user.\n"
    "2. Never infer, assume, or guess parameter values. 'servo-01' or 'device-001' are format examples only.\n"
    "3. Never use placeholder values or example text in tool calls.\n"
    "4. If a required parameter is missing, ask the user to provide it.\n"
    "5. Only include optional parameters with defaults (timeoutSeconds, pollIntervalMs) when the user gives them.\n"
    "6. Use the exact values provided by the user.\n\n"
    "DEVICES:\n"
    "- Device tools require a deviceRef. Ask the user which device to operate on.\n"
    "- If the user has not named a device, run startDeviceDiscovery first, show the devices found, "
    "and wait for the user to choose one.\n"
    "- MAC addresses use the format AA:BB:CC:DD:EE:FF.\n\n"
    "AFTER TOOL EXECUTION:\n"
    "- Base your answer on the actual tool results, including counts, names, addresses and status.\n"
    "- If a tool failed, explain the error and what the user needs to provide."
)


class ConversationResult(BaseModel):
    turn: ChatTurn
    tool_turns: List[ChatTurn] = Field(default_factory=list)
    tool_results: List[ToolCallResult] = Field(default_factory=list)
    tool_calls_requested: int = 0
    model: str = ""

    @property
    def answer(self) -> str:
        return self.turn.content

    @property
    def tools_used(self) -> List[str]:
        return self.turn.tool_names


def _tool_message_content(result: ToolCallResult) -> str:
    if result.success:
        return format_result_value(result.result)
    return json.dumps(result.to_payload())


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"tool arguments must be a JSON object, got {type(raw).__name__}")
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("tool arguments must be a JSON object")
    return parsed


class TwoPhaseOrchestrator:
    def __init__(
        self,
        completion: CompletionClient,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.completion = completion
        self.registry = registry
        self.dispatcher = dispatcher
        self.system_prompt = system_prompt

    def build_messages(self, history: List[ChatTurn], user_turn: ChatTurn) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [{"role": "system", "content": self.system_prompt}]
        messages.extend(turn.to_message() for turn in history)
        messages.append(user_turn.to_message())
        return messages

    async def converse(self, history: List[ChatTurn], user_turn: ChatTurn) -> ConversationResult:
        messages = self.build_messages(history, user_turn)
        tools = self.registry.for_completion()
        logger.info("Phase one: %d messages, %d tools available", len(messages), len(tools))

        first = await self.completion.complete(messages, tools)
        tool_calls = first.get("tool_calls") or []
        if not tool_calls:
            return ConversationResult(
                turn=ChatTurn(role=ChatRole.ASSISTANT, content=first.get("content") or NO_RESPONSE),
                model=self.completion.model,
            )

        logger.info("Completion requested %d tool calls", len(tool_calls))
        tool_turns: List[ChatTurn] = []
        results: List[ToolCallResult] = []
        for call in tool_calls:
            result = await self._run_call(call)
            results.append(result)
            tool_turns.append(
                ChatTurn(
                    role=ChatRole.TOOL,
                    content=_tool_message_content(result),
                    tool_names=[result.tool_name],
                    tool_call_id=result.call_id,
                )
            )

        assistant_message = {
            "role": "assistant",
            "content": first.get("content") or "",
            "tool_calls": tool_calls,
        }
        tool_messages = [turn.to_message() for turn in tool_turns]
        second = await self.completion.complete(messages + [assistant_message] + tool_messages)

        invoked = [r.tool_name for r in results if not r.rejected]
        return ConversationResult(
            turn=ChatTurn(
                role=ChatRole.ASSISTANT,
                content=second.get("content") or NO_RESPONSE,
                tool_names=invoked,
            ),
            tool_turns=tool_turns,
            tool_results=results,
            tool_calls_requested=len(tool_calls),
            model=self.completion.model,
        )

    async def _run_call(self, call: Dict[str, Any]) -> ToolCallResult:
        function = call.get("function") if isinstance(call, dict) else None
        if not isinstance(function, dict):
            function = {}
        name = str(function.get("name") or "")
        raw_id = call.get("id") if isinstance(call, dict) else None
        call_id: Optional[str] = str(raw_id) if raw_id is not None else None
        try:
            arguments = _parse_arguments(function.get("arguments"))
        except (TypeError, ValueError) as e:
            logger.warning("Tool call %s carried malformed arguments: %s", name, e)
            return ToolCallResult(
                tool_name=name or "unknown",
                success=False,
                error=f"Malformed tool arguments for {name}: {e}",
                call_id=call_id,
                rejected=True,
            )
        return await self.dispatcher.dispatch(ToolCallRequest(tool_name=name, arguments=arguments, call_id=call_id))
