"""
omnidrive - Holonomic four-wheel drive control core.

This package contains the core logic for driving an omni chassis:
- Types: Vectors, drive commands, wheel outputs, position targets, configs
- Interfaces: Protocols for pluggable components (input, motors, gyro, telemetry)
- Shaping: Minimum-output floor, deadzone and response curves
- Heading: PID heading lock and the gain cell feeding it
- Drivetrain: Wheel kinematics, heading lock arming, autonomous displacement
- Loop: Fixed-period control loop with input watchdog
"""

from .types import (
    CORNER_VECTORS,
    DriveCommand,
    DrivetrainConfig,
    HeadingGains,
    HeadingLockState,
    LoopConfig,
    PositionLoopGains,
    PositionTarget,
    TargetState,
    Vector2D,
    WheelOutputs,
    WheelPosition,
)
from .errors import (
    ActuatorFault,
    ConfigurationError,
    OmniDriveError,
    SensorFault,
)
from .interfaces import (
    Actuators,
    GainChannel,
    HeadingSensor,
    InputProvider,
    TelemetrySink,
)
from .shaping import MinOutputShaper, pad_min_value
from .heading import GainCell, HeadingController
from .drivetrain import Drivetrain
from .loop import DriveLoop

__all__ = [
    "CORNER_VECTORS",
    "DriveCommand",
    "DrivetrainConfig",
    "HeadingGains",
    "HeadingLockState",
    "LoopConfig",
    "PositionLoopGains",
    "PositionTarget",
    "TargetState",
    "Vector2D",
    "WheelOutputs",
    "WheelPosition",
    "ActuatorFault",
    "ConfigurationError",
    "OmniDriveError",
    "SensorFault",
    "Actuators",
    "GainChannel",
    "HeadingSensor",
    "InputProvider",
    "TelemetrySink",
    "MinOutputShaper",
    "pad_min_value",
    "GainCell",
    "HeadingController",
    "Drivetrain",
    "DriveLoop",
]
