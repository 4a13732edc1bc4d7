"""
Exceptions raised by omnidrive components.

Only ConfigurationError escapes to callers (at construction time).
Sensor and actuator faults are raised by hardware adapters and handled
inside the drivetrain's per-cycle path.
"""

from typing import Optional

from .types import WheelPosition


class OmniDriveError(Exception):
    """Base class for all omnidrive errors"""


class ConfigurationError(OmniDriveError):
    """Invalid wheel geometry or drivetrain constants"""


class SensorFault(OmniDriveError):
    """Heading sensor cannot produce a trustworthy reading"""


class ActuatorFault(OmniDriveError):
    """A single wheel's actuator call failed"""

    def __init__(self, message: str, wheel: Optional[WheelPosition] = None) -> None:
        super().__init__(message)
        self.wheel = wheel
