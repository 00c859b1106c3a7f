"""
Motionbridge: MCP tool-call bridge for motion-control backends
"""

from motionbridge.sdk import (
    MotionbridgeAPIError,
    MotionbridgeClient,
    MotionbridgeConnectionError,
    MotionbridgeError,
    MotionbridgeToolError,
)
from motionbridge.version import __version__

__all__ = [
    "__version__",
    "MotionbridgeClient",
    "MotionbridgeError",
    "MotionbridgeConnectionError",
    "MotionbridgeAPIError",
    "MotionbridgeToolError",
]
