"""
Core interfaces (protocols) for pluggable components.

These define the contracts that all implementations must follow.
Python Protocols are like interfaces in Java/C# - they define
what methods a class must have without forcing inheritance.
"""

from typing import Callable, Optional, Protocol

from .types import DriveCommand, PositionLoopGains, WheelPosition


class InputProvider(Protocol):
    """
    Interface for input sources (gamepad, scripted, etc.).

    All input providers must implement these methods to be usable
    by the DriveLoop.
    """

    async def start(self) -> None:
        """
        Initialize and start the input provider.

        Called once when the loop starts up.
        """
        ...

    async def stop(self) -> None:
        """
        Stop and cleanup the input provider.

        Must close devices, release resources, etc.
        """
        ...

    async def read_drive_command(self) -> Optional[DriveCommand]:
        """
        Read current drive intent.

        This should be non-blocking and return immediately.

        Returns:
            DriveCommand for this cycle, or None if no input is available
        """
        ...


class Actuators(Protocol):
    """
    Interface for the four wheel motor controllers.

    Implementations raise ActuatorFault when a call for one wheel fails.
    """

    def set_percent_output(self, wheel: WheelPosition, value: float) -> None:
        """Open-loop output, value in [-1, 1]"""
        ...

    def set_position_target(self, wheel: WheelPosition, counts: int) -> None:
        """Closed-loop absolute position target in encoder counts"""
        ...

    def get_position(self, wheel: WheelPosition) -> int:
        """Current encoder position in counts"""
        ...

    def set_inverted(self, wheel: WheelPosition, inverted: bool) -> None:
        """Invert output direction (set once at construction)"""
        ...

    def configure_position_loop(self, wheel: WheelPosition, gains: PositionLoopGains) -> None:
        """Push closed-loop position gains to one wheel's controller"""
        ...


class HeadingSensor(Protocol):
    """
    Interface for the chassis gyro.

    May raise SensorFault when a reading cannot be produced.
    """

    def get_heading_degrees(self) -> float:
        """Continuous heading in degrees, positive clockwise, may exceed +/-360"""
        ...

    def is_connected(self) -> bool:
        ...


class TelemetrySink(Protocol):
    """Fire-and-forget numeric telemetry (dashboard, log, etc.)"""

    def publish(self, key: str, value: float) -> None:
        ...


class GainChannel(Protocol):
    """
    Source of runtime gain updates.

    Callbacks are delivered outside the control loop's call stack,
    possibly from another thread.
    """

    def subscribe(self, key: str, callback: Callable[[float], None]) -> None:
        ...
