"""
Motionbridge SDK public exports.
"""

from motionbridge.sdk.client import MotionbridgeClient
from motionbridge.sdk.errors import (
    MotionbridgeAPIError,
    MotionbridgeConnectionError,
    MotionbridgeError,
    MotionbridgeToolError,
)

__all__ = [
    "MotionbridgeClient",
    "MotionbridgeError",
    "MotionbridgeConnectionError",
    "MotionbridgeAPIError",
    "MotionbridgeToolError",
]
