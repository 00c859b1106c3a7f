import json
import logging
import os
from typing import Any, List, Optional

from motionbridge.core.types import ToolCallResult

logger = logging.getLogger("Motionbridge.mcp.utils")


def truncate_tool_text(text: str, name: str) -> str:
    """Apply a global length constraint to tool responses."""
    max_chars = int(os.environ.get("MOTIONBRIDGE_TOOL_RESPONSE_MAX_CHARS", "32768"))
    if len(text) > max_chars:
        logger.info("Truncating response for tool '%s' (%d -> %d chars)", name, len(text), max_chars)
        suffix = "\n\n[Response truncated due to size limits]"
        cutoff = max(0, max_chars - len(suffix))
        return text[:cutoff] + suffix
    return text


def format_result_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


def format_tool_result_text(result: ToolCallResult) -> str:
    """Convert a ToolCallResult to the text block returned to MCP clients."""
    if not result.success:
        text = f"Error: {result.error}"
        if result.hint:
            text = f"{text}\nHint: {result.hint}"
        return text
    if result.result is None:
        return "Success"
    return truncate_tool_text(format_result_value(result.result), result.tool_name)


def build_initialize_instructions(tool_count: int, startup_warnings: Optional[List[str]] = None) -> str:
    """Build a set of instructions for the client during initialization."""
    base_instructions = (
        f"Motionbridge MCP server exposing {tool_count} motion-control tools. "
        "Device tools need the exact deviceRef of a discovered device; ask the user for it "
        "and never substitute an example value such as 'servo-01'."
    )
    if not startup_warnings:
        return base_instructions
    bullet_list = "\n".join(f"- {warning}" for warning in startup_warnings)
    return f"{base_instructions}\n\nStartup checks:\n{bullet_list}"
