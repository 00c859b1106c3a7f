from typing import List, Dict, Any

from .protocol import JSON_SCHEMA_2020_12

_DEVICE_REF = {"type": "string", "description": "The device reference/ID as reported by device discovery."}
_HOLDING_DURATION = {"type": "number", "description": "Delay in milliseconds before quick stop after reaching target"}
_SKIP_QUICK_STOP = {"type": "boolean", "description": "Skip quick stop request after reaching target"}


def _device_only(name: str, description: str) -> Dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "inputSchema": {
            "type": "object",
            "properties": {"deviceRef": _DEVICE_REF},
            "required": ["deviceRef"],
        },
    }


# Static catalog used when the remote capability query is unavailable.
TOOLS_SCHEMAS: List[Dict[str, Any]] = [
    {
        "name": "ping",
        "description": "Health check for the motion-control backend.",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "startDeviceDiscovery",
        "description": "Start device discovery on the network and monitor progress via polling. Returns the discovered devices once at least one is found or the timeout elapses.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "macAddress": {"type": "string", "description": "MAC address of the network interface, format AA:BB:CC:DD:EE:FF."},
                "timeoutSeconds": {"type": "number", "default": 60, "description": "Maximum seconds to wait for devices (default 60)."},
                "pollIntervalMs": {"type": "number", "default": 1500, "description": "Milliseconds between status checks (default 1500)."},
            },
            "required": ["macAddress"],
        },
    },
    {
        "name": "getGroupInfo",
        "description": "Retrieve group information and parameters for a device.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "groupId": {"type": "string", "description": "Parameter group identifier."},
            },
            "required": ["deviceRef", "groupId"],
        },
    },
    _device_only(
        "startHoming",
        "Execute a homing sequence to establish the home position reference point on the device. Required before position-based operations.",
    ),
    {
        "name": "startPositionProfile",
        "description": "Execute a POSITION PROFILE on the servo device to move to a specific target position with controlled acceleration and deceleration.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "target": {"type": "number", "description": "Target position in counts or units (0x607A:00)"},
                "acceleration": {"type": "number", "description": "Profile acceleration in units/s² (0x6083:00)"},
                "deceleration": {"type": "number", "description": "Profile deceleration in units/s² (0x6084:00)"},
                "relative": {"type": "boolean", "description": "If true, target is relative to current position"},
                "holdingDuration": _HOLDING_DURATION,
                "skipQuickStop": _SKIP_QUICK_STOP,
                "targetReachTimeout": {"type": "number", "description": "Timeout in milliseconds to wait for target reached"},
                "window": {"type": "number", "description": "Position window (0x6067:00)"},
                "windowTime": {"type": "number", "description": "Position window time (0x6068:00)"},
            },
            "required": ["deviceRef", "target", "acceleration", "deceleration"],
        },
    },
    {
        "name": "startVelocityProfile",
        "description": "Execute a VELOCITY PROFILE on the servo device to move at a specific target velocity with controlled acceleration and deceleration ramps.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "target": {"type": "number", "description": "Target velocity in RPM or counts/s (0x60FF:00)"},
                "acceleration": {"type": "number", "description": "Profile acceleration ramp in units/s² (0x6083:00)"},
                "deceleration": {"type": "number", "description": "Profile deceleration ramp in units/s² (0x6084:00)"},
                "holdingDuration": _HOLDING_DURATION,
                "skipQuickStop": _SKIP_QUICK_STOP,
                "targetReachTimeout": {"type": "number", "description": "Timeout in milliseconds to wait for target velocity reached"},
                "window": {"type": "number", "description": "Velocity window tolerance (0x606D:00)"},
                "windowTime": {"type": "number", "description": "Velocity window time (0x606E:00)"},
            },
            "required": ["deviceRef", "target", "acceleration", "deceleration"],
        },
    },
    {
        "name": "startTorqueProfile",
        "description": "Execute a TORQUE PROFILE on the servo device to apply a specific target torque with controlled ramp slope.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "target": {"type": "number", "description": "Target torque in mNm (0x6071:00)"},
                "slope": {"type": "number", "description": "Torque ramp slope in mNm/s (0x6087:00)"},
                "holdingDuration": _HOLDING_DURATION,
                "skipQuickStop": _SKIP_QUICK_STOP,
                "targetReachTimeout": {"type": "number", "description": "Timeout in milliseconds to wait for target torque reached"},
                "window": {"type": "number", "description": "Torque window tolerance (0x2014:01)"},
                "windowTime": {"type": "number", "description": "Torque window time (0x2014:02)"},
            },
            "required": ["deviceRef", "target", "slope"],
        },
    },
    _device_only("releaseControl", "Release control of the device."),
    _device_only("resetFault", "Reset fault status on a device."),
    _device_only(
        "getCia402State",
        "Retrieve the current CiA 402 state machine status of a device (e.g. ready to switch on, switched on, operation enabled).",
    ),
    _device_only("startSystemIdentification", "Execute the system identification procedure."),
    _device_only("getSystemIdentificationData", "Retrieve system identification results."),
    _device_only("getPositionTuningInfo", "Retrieve position tuning parameters and status."),
    {
        "name": "startPositionAutoTuning",
        "description": "Execute automatic position tuning.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "controllerType": {"type": "string", "description": "Position controller type to tune."},
            },
            "required": ["deviceRef", "controllerType"],
        },
    },
    _device_only("getVelocityTuningInfo", "Retrieve velocity tuning parameters and status."),
    _device_only("startVelocityAutoTuning", "Execute automatic velocity tuning."),
    _device_only("getTorqueTuningInfo", "Retrieve torque tuning parameters and status."),
    {
        "name": "computePositionGains",
        "description": "Compute position tuning gains.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "parameters": {"type": "object", "description": "Gain computation parameters."},
            },
            "required": ["deviceRef"],
        },
    },
    {
        "name": "computeVelocityGains",
        "description": "Compute velocity tuning gains.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "parameters": {"type": "object", "description": "Gain computation parameters."},
            },
            "required": ["deviceRef"],
        },
    },
    {
        "name": "getTuningTrajectoryInfo",
        "description": "Retrieve tuning trajectory information.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "profileType": {"type": "string", "enum": ["position", "velocity", "torque"]},
            },
            "required": ["deviceRef", "profileType"],
        },
    },
    {
        "name": "startSignalGenerator",
        "description": "Start signal generation for tuning.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "deviceRef": _DEVICE_REF,
                "config": {"type": "object", "description": "Signal generator configuration."},
            },
            "required": ["deviceRef"],
        },
    },
    _device_only("stopSignalGenerator", "Stop signal generation."),
    _device_only("quickStop", "Send a quick stop command to a device."),
]

for _schema_def in TOOLS_SCHEMAS:
    _schema_def["inputSchema"].setdefault("$schema", JSON_SCHEMA_2020_12)
