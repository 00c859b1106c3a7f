"""
Static tool-name to backend endpoint table.

The table is fixed at import time and is not editable at runtime.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class ToolName(str, Enum):
    PING = "ping"
    START_DEVICE_DISCOVERY = "startDeviceDiscovery"
    GET_GROUP_INFO = "getGroupInfo"
    START_HOMING = "startHoming"
    START_POSITION_PROFILE = "startPositionProfile"
    START_VELOCITY_PROFILE = "startVelocityProfile"
    START_TORQUE_PROFILE = "startTorqueProfile"
    RELEASE_CONTROL = "releaseControl"
    RESET_FAULT = "resetFault"
    GET_CIA402_STATE = "getCia402State"
    START_SYSTEM_IDENTIFICATION = "startSystemIdentification"
    GET_SYSTEM_IDENTIFICATION_DATA = "getSystemIdentificationData"
    GET_POSITION_TUNING_INFO = "getPositionTuningInfo"
    START_POSITION_AUTO_TUNING = "startPositionAutoTuning"
    GET_VELOCITY_TUNING_INFO = "getVelocityTuningInfo"
    START_VELOCITY_AUTO_TUNING = "startVelocityAutoTuning"
    GET_TORQUE_TUNING_INFO = "getTorqueTuningInfo"
    COMPUTE_POSITION_GAINS = "computePositionGains"
    COMPUTE_VELOCITY_GAINS = "computeVelocityGains"
    GET_TUNING_TRAJECTORY_INFO = "getTuningTrajectoryInfo"
    START_SIGNAL_GENERATOR = "startSignalGenerator"
    STOP_SIGNAL_GENERATOR = "stopSignalGenerator"
    QUICK_STOP = "quickStop"


BODY_NONE = "none"
BODY_REMAINING = "remaining"


@dataclass(frozen=True)
class PollSpec:
    """Status endpoint for a tool that only starts a long-running operation."""
    status_path: str
    timeout_param: str = "timeoutSeconds"
    interval_param: str = "pollIntervalMs"


@dataclass(frozen=True)
class EndpointSpec:
    method: str
    path: str
    query: Tuple[str, ...] = ()
    body: str = BODY_NONE
    poll: Optional[PollSpec] = None
    idempotent: Optional[bool] = None

    @property
    def retryable(self) -> bool:
        if self.idempotent is not None:
            return self.idempotent
        return self.method == "GET"

    @property
    def body_field(self) -> Optional[str]:
        if self.body.startswith("field:"):
            return self.body.split(":", 1)[1]
        return None


_PM = "/parameterConfig/devices/{deviceRef}"

ROUTES: Dict[ToolName, EndpointSpec] = {
    ToolName.PING: EndpointSpec("GET", "/health"),
    ToolName.START_DEVICE_DISCOVERY: EndpointSpec(
        "POST",
        "/startMaster/discoverDevices/{macAddress}",
        poll=PollSpec(status_path="/startMaster/devices/discoveryStatus"),
    ),
    ToolName.GET_GROUP_INFO: EndpointSpec("GET", _PM + "/groupInfo/{groupId}"),
    ToolName.START_HOMING: EndpointSpec("POST", _PM + "/startHoming"),
    ToolName.START_POSITION_PROFILE: EndpointSpec("POST", _PM + "/startPositionProfile", body=BODY_REMAINING),
    ToolName.START_VELOCITY_PROFILE: EndpointSpec("POST", _PM + "/startVelocityProfile", body=BODY_REMAINING),
    ToolName.START_TORQUE_PROFILE: EndpointSpec("POST", _PM + "/startTorqueProfile", body=BODY_REMAINING),
    ToolName.RELEASE_CONTROL: EndpointSpec("POST", "/parameterConfig/api/devices/{deviceRef}/releaseControl"),
    ToolName.RESET_FAULT: EndpointSpec("GET", _PM + "/resetFault/"),
    ToolName.GET_CIA402_STATE: EndpointSpec("GET", "/parameterConfig/api/devices/{deviceRef}/getCia402StateOfDevice"),
    ToolName.START_SYSTEM_IDENTIFICATION: EndpointSpec("GET", _PM + "/startSystemIdentification", idempotent=False),
    ToolName.GET_SYSTEM_IDENTIFICATION_DATA: EndpointSpec("GET", _PM + "/getSystemIdentificationData"),
    ToolName.GET_POSITION_TUNING_INFO: EndpointSpec("GET", _PM + "/getPositionTuningInfo"),
    ToolName.START_POSITION_AUTO_TUNING: EndpointSpec(
        "GET", _PM + "/startPositionAutoTuning/{controllerType}", idempotent=False
    ),
    ToolName.GET_VELOCITY_TUNING_INFO: EndpointSpec("GET", _PM + "/getVelocityTuningInfo"),
    ToolName.START_VELOCITY_AUTO_TUNING: EndpointSpec("GET", _PM + "/startVelocityAutoTuning/", idempotent=False),
    ToolName.GET_TORQUE_TUNING_INFO: EndpointSpec("GET", _PM + "/getTorqueTuningInfo"),
    ToolName.COMPUTE_POSITION_GAINS: EndpointSpec("POST", _PM + "/computePositionGains", body="field:parameters"),
    ToolName.COMPUTE_VELOCITY_GAINS: EndpointSpec("POST", _PM + "/computeVelocityGains", body="field:parameters"),
    ToolName.GET_TUNING_TRAJECTORY_INFO: EndpointSpec("GET", _PM + "/getTuningTrajectoryInfo/profileType/{profileType}"),
    ToolName.START_SIGNAL_GENERATOR: EndpointSpec("POST", _PM + "/startSignalGenerator", body="field:config"),
    ToolName.STOP_SIGNAL_GENERATOR: EndpointSpec("POST", _PM + "/stopSignalGenerator"),
    ToolName.QUICK_STOP: EndpointSpec(
        "GET", "/motionMasterClient/api/devices/{deviceRef}/quick-stop", idempotent=False
    ),
}

assert set(ROUTES) == set(ToolName), "every ToolName needs a route"


def resolve_route(tool_name: str) -> Optional[EndpointSpec]:
    try:
        return ROUTES[ToolName(tool_name)]
    except ValueError:
        return None
