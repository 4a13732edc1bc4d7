"""
Core data types for the omnidrive control system.

All the data structures that flow through the drivetrain, fully typed.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, Iterator, Optional, Tuple
import math
import time


HALF_SQRT2 = math.sqrt(2) / 2


class WheelPosition(IntEnum):
    """Corner wheel positions - values double as array indices"""
    FRONT_LEFT = 0
    FRONT_RIGHT = 1
    BACK_LEFT = 2
    BACK_RIGHT = 3

    @property
    def is_left(self) -> bool:
        """Left-side wheels receive +rotation, right-side wheels -rotation"""
        return self in (WheelPosition.FRONT_LEFT, WheelPosition.BACK_LEFT)


class TargetState(Enum):
    """Lifecycle of a PositionTarget"""
    ISSUED = "issued"            # Position commands sent, not yet polled
    POLLING = "polling"          # is_done has been called at least once
    COMPLETE = "complete"        # All four wheels reached the target
    SUPERSEDED = "superseded"    # A newer drive/translate command replaced it


@dataclass(frozen=True)
class Vector2D:
    """
    Immutable 2D vector.

    For drive commands x is strafe (positive = right) and y is forward.
    For displacements both are in centimeters.
    """
    x: float
    y: float

    @classmethod
    def zero(cls) -> "Vector2D":
        return cls(0.0, 0.0)

    def dot(self, other: "Vector2D") -> float:
        return self.x * other.x + self.y * other.y

    def divide(self, scalar: float) -> "Vector2D":
        """Divide both components by scalar (caller guarantees scalar != 0)"""
        return Vector2D(self.x / scalar, self.y / scalar)

    @property
    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def diamond_magnitude(self) -> float:
        """L1 norm - the magnitude that the diamond remap bounds to 1"""
        return abs(self.x) + abs(self.y)

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def map_square_to_diamond(self) -> "Vector2D":
        """
        Remap a square-bounded input into the unit diamond.

        A stick pushed to a corner of its square travel, e.g. (1, 1),
        would otherwise command more than full output on one wheel pair.
        Scaling by max(|x|, |y|) / (|x| + |y|) keeps direction and maps
        the square edge onto the diamond edge |x| + |y| = 1.
        """
        l1 = self.diamond_magnitude
        if l1 == 0.0:
            return Vector2D.zero()
        scale = max(abs(self.x), abs(self.y)) / l1
        return Vector2D(self.x * scale, self.y * scale)


# Unit corner-projection vectors. FL/BR and FR/BL share a projection axis.
CORNER_VECTORS: Dict[WheelPosition, Vector2D] = {
    WheelPosition.FRONT_LEFT: Vector2D(HALF_SQRT2, HALF_SQRT2),
    WheelPosition.FRONT_RIGHT: Vector2D(-HALF_SQRT2, HALF_SQRT2),
    WheelPosition.BACK_LEFT: Vector2D(-HALF_SQRT2, HALF_SQRT2),
    WheelPosition.BACK_RIGHT: Vector2D(HALF_SQRT2, HALF_SQRT2),
}


@dataclass
class DriveCommand:
    """
    One cycle of operator or autonomous drive intent.

    This is the output of all InputProvider implementations.
    """
    translate: Vector2D          # Percent output, each component in [-1, 1]
    rotate: float = 0.0          # Positive is clockwise, [-1, 1]
    timestamp: float = field(default_factory=time.time)

    @property
    def is_neutral(self) -> bool:
        """Check if no movement is requested"""
        return self.translate.magnitude < 0.01 and abs(self.rotate) < 0.01

    @classmethod
    def stop(cls) -> "DriveCommand":
        """Create a stop command"""
        return cls(translate=Vector2D.zero(), rotate=0.0)


@dataclass
class HeadingLockState:
    """Heading hold state owned by the drivetrain, persists across cycles"""
    target_angle: float = 0.0
    arm_countdown: int = 0

    @property
    def is_locked(self) -> bool:
        """Lock is engaged once the arming window has run out"""
        return self.arm_countdown == 0


@dataclass
class WheelOutputs:
    """Percent-output commands for the four wheels, each in [-1, 1]"""
    front_left: float
    front_right: float
    back_left: float
    back_right: float

    def __getitem__(self, position: WheelPosition) -> float:
        return self.as_tuple()[position]

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.front_left, self.front_right, self.back_left, self.back_right)

    def items(self) -> Iterator[Tuple[WheelPosition, float]]:
        return zip(WheelPosition, self.as_tuple())

    @property
    def is_stop(self) -> bool:
        return all(value == 0.0 for value in self.as_tuple())

    @classmethod
    def from_mapping(cls, values: Dict[WheelPosition, float]) -> "WheelOutputs":
        return cls(
            front_left=values[WheelPosition.FRONT_LEFT],
            front_right=values[WheelPosition.FRONT_RIGHT],
            back_left=values[WheelPosition.BACK_LEFT],
            back_right=values[WheelPosition.BACK_RIGHT],
        )


@dataclass
class PositionTarget:
    """
    Absolute encoder targets for one autonomous displacement.

    A target of None means the wheel's position could not be read when
    the move was issued; such a move never reports done.
    """
    targets: Dict[WheelPosition, Optional[int]]
    tolerance: int
    state: TargetState = TargetState.ISSUED
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Validate tolerance"""
        assert self.tolerance > 0, f"tolerance must be positive: {self.tolerance}"

    @property
    def is_terminal(self) -> bool:
        return self.state in (TargetState.COMPLETE, TargetState.SUPERSEDED)


@dataclass(frozen=True)
class HeadingGains:
    """Heading-lock PID gains (output units per degree)"""
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0


@dataclass(frozen=True)
class PositionLoopGains:
    """Closed-loop position gains pushed to every wheel's motor controller"""
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0
    kf: float = 1023.0 / 100     # Full output / max velocity (counts per 100 ms)
    izone: int = 0


@dataclass
class DrivetrainConfig:
    """Configuration for the Drivetrain"""
    wheel_circumference_cm: float = 6 * 2.54 * math.pi
    motor_revs_per_wheel_rev: float = 16.0
    counts_per_motor_rev: int = 40
    tolerance: int = 100               # Position completion window (counts)
    arm_cycles: int = 10               # Cycles to keep capturing heading after a turn
    period: float = 0.02               # Control period (seconds), used for PID dt
    corner_vectors: Dict[WheelPosition, Vector2D] = field(
        default_factory=lambda: dict(CORNER_VECTORS)
    )
    inverted: Dict[WheelPosition, bool] = field(
        default_factory=lambda: {
            WheelPosition.FRONT_LEFT: False,
            WheelPosition.FRONT_RIGHT: False,
            WheelPosition.BACK_LEFT: True,
            WheelPosition.BACK_RIGHT: False,
        }
    )
    heading_gains: HeadingGains = field(default_factory=HeadingGains)
    position_gains: PositionLoopGains = field(default_factory=PositionLoopGains)

    def cm_to_counts(self, cm: float) -> int:
        """Convert wheel travel in centimeters to encoder counts"""
        revs = cm / self.wheel_circumference_cm
        return int(round(revs * self.motor_revs_per_wheel_rev * self.counts_per_motor_rev))


@dataclass
class LoopConfig:
    """Configuration for the DriveLoop"""
    loop_interval: float = 0.02        # Main loop interval (50Hz)
    input_timeout: float = 0.5         # Max command age before the loop stops the drivetrain
