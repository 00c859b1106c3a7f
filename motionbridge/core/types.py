"""
Motionbridge Core Types
-----------------------
Pydantic models shared by the session transport, the tool dispatcher
and the chat orchestrator.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ParameterKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    ANY = "any"


class ParameterRole(str, Enum):
    VALUE = "value"
    ENTITY_REF = "entity_ref"


class Provenance(str, Enum):
    DISCOVERED = "discovered"
    FALLBACK = "fallback"


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ParameterSpec(BaseModel):
    """One named parameter of a tool's input contract."""
    model_config = ConfigDict(frozen=True)

    name: str
    kind: ParameterKind = ParameterKind.ANY
    required: bool = False
    role: ParameterRole = ParameterRole.VALUE
    description: str = ""
    enum: Optional[Tuple[Any, ...]] = None
    default: Any = None


class ToolDescriptor(BaseModel):
    """Immutable description of one invocable tool."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    parameters: Tuple[ParameterSpec, ...] = ()
    provenance: Provenance = Provenance.FALLBACK

    def parameter(self, name: str) -> Optional[ParameterSpec]:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        return None

    @property
    def required(self) -> List[str]:
        return [p.name for p in self.parameters if p.required]

    def to_mcp(self) -> Dict[str, Any]:
        """Render as an MCP ``tools/list`` entry."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolCallRequest(BaseModel):
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    call_id: Optional[str] = None


class ToolCallResult(BaseModel):
    """Outcome of exactly one dispatched tool call."""
    tool_name: str
    success: bool
    result: Any = None
    error: Optional[str] = None
    hint: Optional[str] = None
    call_id: Optional[str] = None
    rejected: bool = False

    @model_validator(mode="after")
    def _check_populated(self) -> "ToolCallResult":
        if self.success and self.error is not None:
            raise ValueError("successful tool call result cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("failed tool call result requires an error message")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for a chat tool turn."""
        if self.success:
            return {"success": True, "result": self.result}
        payload: Dict[str, Any] = {"success": False, "error": self.error}
        if self.hint:
            payload["hint"] = self.hint
        return payload


class PollState(BaseModel):
    """Transient bookkeeping for one long-running operation poll loop."""
    target: str = ""
    started_at: float = Field(default_factory=time.monotonic)
    poll_count: int = 0
    last_result: Any = None


class PollOutcome(BaseModel):
    result: Any = None
    elapsed: float = 0.0
    timed_out: bool = False
    polls: int = 0


class ChatTurn(BaseModel):
    role: ChatRole
    content: str = ""
    tool_names: List[str] = Field(default_factory=list)
    tool_call_id: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.role == ChatRole.TOOL:
            if self.tool_call_id:
                message["tool_call_id"] = self.tool_call_id
            if self.tool_names:
                message["name"] = self.tool_names[0]
        return message


class Session(BaseModel):
    """A live binding between a client and its server-side transport."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    session_id: str
    created_at: float = Field(default_factory=time.time)
    transport: Any = None
