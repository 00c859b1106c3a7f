"""
Argument guard for tool calls.

Runs before any backend request. Rejects calls that are missing required
parameters, carry values of the wrong kind, or reference an entity with a
value that looks like a placeholder copied from documentation instead of
something the end user actually supplied.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern

from motionbridge.core.types import ParameterKind, ParameterRole, ParameterSpec, ToolDescriptor

logger = logging.getLogger("Motionbridge.mcp.guard")

DEFAULT_PLACEHOLDER_PATTERNS = (
    r"^(servo|device|motor|actuator|axis)[-_]?\d+$",
    r"^example",
    r"^demo",
    r"^test",
    r"^sample",
)

PLACEHOLDER_HINT = (
    "Ask the user which device they want to operate on and use the exact value they give. "
    "Do not retry with another guessed or example reference."
)
MISSING_HINT = "Ask the user to provide this value explicitly."


@dataclass(frozen=True)
class Rejection:
    parameter: str
    reason: str
    hint: Optional[str] = None

    @property
    def message(self) -> str:
        return self.reason


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _kind_matches(kind: ParameterKind, value: Any) -> bool:
    if kind == ParameterKind.ANY:
        return True
    if kind == ParameterKind.STRING:
        return isinstance(value, str)
    if kind == ParameterKind.BOOLEAN:
        return isinstance(value, bool)
    if kind == ParameterKind.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind == ParameterKind.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind == ParameterKind.OBJECT:
        return isinstance(value, dict)
    if kind == ParameterKind.ARRAY:
        return isinstance(value, list)
    return False


class ArgumentGuard:
    """Pure, local validation of tool-call arguments against a descriptor."""

    def __init__(self, extra_patterns: Optional[Iterable[str]] = None):
        patterns: List[str] = list(DEFAULT_PLACEHOLDER_PATTERNS)
        patterns.extend(extra_patterns or [])
        self._patterns: List[Pattern[str]] = [re.compile(p, re.IGNORECASE) for p in patterns]

    def is_placeholder(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        candidate = value.strip()
        return any(p.search(candidate) for p in self._patterns)

    def validate(self, descriptor: ToolDescriptor, args: Dict[str, Any]) -> Optional[Rejection]:
        for name in descriptor.required:
            if _is_blank(args.get(name)):
                return Rejection(
                    parameter=name,
                    reason=f"Missing required parameter: {name}",
                    hint=MISSING_HINT,
                )

        for spec in descriptor.parameters:
            if spec.role != ParameterRole.ENTITY_REF or spec.name not in args:
                continue
            value = args[spec.name]
            if self.is_placeholder(value):
                logger.info(
                    "Rejected %s: %s=%r looks like a placeholder",
                    descriptor.name,
                    spec.name,
                    value,
                )
                return Rejection(
                    parameter=spec.name,
                    reason=(
                        f'Invalid parameter value: {spec.name}="{value}". This appears to be an '
                        "example value. Please ask the user to provide the actual value."
                    ),
                    hint=PLACEHOLDER_HINT,
                )

        for name, value in args.items():
            spec = descriptor.parameter(name)
            if spec is None or value is None:
                continue
            rejection = self._check_kind(spec, value)
            if rejection:
                return rejection
        return None

    def _check_kind(self, spec: ParameterSpec, value: Any) -> Optional[Rejection]:
        if not _kind_matches(spec.kind, value):
            return Rejection(
                parameter=spec.name,
                reason=f"Invalid type for parameter {spec.name}: expected {spec.kind.value}, got {type(value).__name__}",
            )
        if spec.enum is not None and value not in spec.enum:
            allowed = ", ".join(str(v) for v in spec.enum)
            return Rejection(
                parameter=spec.name,
                reason=f"Invalid value for parameter {spec.name}: {value!r} is not one of [{allowed}]",
            )
        return None
