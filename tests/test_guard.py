"""Tests for motionbridge.mcp.guard: placeholder and contract checks."""

import pytest

from motionbridge.core.types import ParameterKind, ParameterRole, ParameterSpec, ToolDescriptor
from motionbridge.mcp.guard import ArgumentGuard


def _descriptor(*extra: ParameterSpec) -> ToolDescriptor:
    return ToolDescriptor(
        name="startPositionProfile",
        parameters=(
            ParameterSpec(name="deviceRef", kind=ParameterKind.STRING, required=True, role=ParameterRole.ENTITY_REF),
            ParameterSpec(name="target", kind=ParameterKind.NUMBER, required=True),
            ParameterSpec(name="relative", kind=ParameterKind.BOOLEAN),
        )
        + extra,
    )


@pytest.fixture
def guard():
    return ArgumentGuard()


@pytest.mark.parametrize(
    "value",
    ["servo-01", "device-001", "MOTOR_7", "axis3", " actuator-2 ", "example-drive", "Demo", "test_rig", "sample"],
)
def test_placeholder_values_are_rejected(guard, value):
    rejection = guard.validate(_descriptor(), {"deviceRef": value, "target": 10})
    assert rejection is not None
    assert rejection.parameter == "deviceRef"
    assert "deviceRef" in rejection.message
    assert "ask the user" in rejection.hint.lower()


@pytest.mark.parametrize("value", ["line3-axis-7", "0x1A2B", "drive-west", "AA:BB:CC:DD:EE:FF", "servo-main"])
def test_real_values_pass(guard, value):
    assert guard.validate(_descriptor(), {"deviceRef": value, "target": 10}) is None


def test_missing_required_is_checked_first(guard):
    rejection = guard.validate(_descriptor(), {"target": 10})
    assert rejection.parameter == "deviceRef"
    assert rejection.message == "Missing required parameter: deviceRef"


def test_none_counts_as_missing(guard):
    rejection = guard.validate(_descriptor(), {"deviceRef": "line3-axis-7", "target": None})
    assert rejection.message == "Missing required parameter: target"


@pytest.mark.parametrize("value", ["", "  ", "\t\n"])
def test_blank_required_values_count_as_missing(guard, value):
    rejection = guard.validate(_descriptor(), {"deviceRef": value, "target": 10})
    assert rejection.parameter == "deviceRef"
    assert rejection.message == "Missing required parameter: deviceRef"
    assert rejection.hint


def test_blank_optional_string_is_not_missing(guard):
    descriptor = _descriptor(ParameterSpec(name="label", kind=ParameterKind.STRING))
    assert guard.validate(descriptor, {"deviceRef": "line3-axis-7", "target": 1, "label": ""}) is None


def test_undeclared_arguments_are_not_kind_checked(guard):
    assert guard.validate(_descriptor(), {"deviceRef": "line3-axis-7", "target": 1, "speed": "fast"}) is None


def test_placeholder_check_only_applies_to_entity_refs(guard):
    descriptor = _descriptor(ParameterSpec(name="label", kind=ParameterKind.STRING))
    assert guard.validate(descriptor, {"deviceRef": "line3-axis-7", "target": 1, "label": "servo-01"}) is None


def test_kind_mismatch_is_rejected(guard):
    rejection = guard.validate(_descriptor(), {"deviceRef": "line3-axis-7", "target": "fast"})
    assert rejection.parameter == "target"
    assert "expected number" in rejection.message


def test_booleans_are_not_numbers(guard):
    rejection = guard.validate(_descriptor(), {"deviceRef": "line3-axis-7", "target": True})
    assert rejection.parameter == "target"


def test_enum_membership(guard):
    descriptor = ToolDescriptor(
        name="getTuningTrajectoryInfo",
        parameters=(
            ParameterSpec(name="profileType", kind=ParameterKind.STRING, required=True, enum=("position", "velocity")),
        ),
    )
    assert guard.validate(descriptor, {"profileType": "velocity"}) is None
    rejection = guard.validate(descriptor, {"profileType": "jerk"})
    assert "not one of" in rejection.message


def test_extra_patterns_extend_policy():
    guard = ArgumentGuard(extra_patterns=[r"^drive-x+$"])
    assert guard.is_placeholder("drive-xxx")
    assert guard.is_placeholder("servo-01")
    assert not guard.is_placeholder("drive-west")
    assert not guard.is_placeholder(42)
