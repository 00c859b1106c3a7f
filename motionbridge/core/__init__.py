from motionbridge.core.config import BridgeConfig
from motionbridge.core.types import (
    ChatTurn,
    ParameterSpec,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
)

__all__ = [
    "BridgeConfig",
    "ChatTurn",
    "ParameterSpec",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDescriptor",
]
