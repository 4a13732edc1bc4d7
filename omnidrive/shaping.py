"""
Input shaping - the small curves between raw intent and wheel outputs.

- Minimum output floor so no wheel is starved when translate and rotate mix
- Deadzones to prevent stick drift
- Response curves for fine control at low speed
"""

import math
from dataclasses import dataclass
from typing import Callable


# (rotate_magnitude, wheel_component, is_rotation_axis) -> padded component
Shaper = Callable[[float, float, bool], float]


def _sign(value: float) -> float:
    return 1.0 if value > 0 else -1.0


@dataclass(frozen=True)
class MinOutputShaper:
    """
    Minimum-output floor for wheel components.

    Motors below roughly `floor` percent output do not overcome static
    friction, so while a rotation is mixed in every non-zero component is
    lifted onto [floor, 1]. Below `ramp` the curve blends linearly to 0 so
    the result stays continuous and odd-symmetric.
    """
    floor: float = 0.15
    ramp: float = 0.05

    def __post_init__(self) -> None:
        """Validate ranges"""
        assert 0.0 <= self.floor < 1.0, f"floor out of range: {self.floor}"
        assert 0.0 < self.ramp <= 1.0, f"ramp out of range: {self.ramp}"

    def __call__(self, rotate_magnitude: float, value: float, is_rotation_axis: bool) -> float:
        if not is_rotation_axis and rotate_magnitude == 0:
            return value
        if value == 0.0:
            return 0.0

        magnitude = abs(value)
        if magnitude >= self.ramp:
            return _sign(value) * (self.floor + (1.0 - self.floor) * magnitude)

        edge = self.floor + (1.0 - self.floor) * self.ramp
        return value / self.ramp * edge


DEFAULT_SHAPER = MinOutputShaper()


def pad_min_value(rotate_magnitude: float, value: float, is_rotation_axis: bool) -> float:
    """Apply the default minimum-output floor (see MinOutputShaper)"""
    return DEFAULT_SHAPER(rotate_magnitude, value, is_rotation_axis)


def apply_deadzone(value: float, deadzone: float) -> float:
    """
    Apply deadzone to eliminate drift and small movements.

    Input below deadzone threshold returns 0.
    Input above deadzone is rescaled to maintain full range.

    Args:
        value: Input value (-1.0 to 1.0)
        deadzone: Threshold in [0, 1)

    Returns:
        Deadzone-filtered value
    """
    if abs(value) < deadzone:
        return 0.0

    magnitude = abs(value)
    scaled = (magnitude - deadzone) / (1.0 - deadzone)
    return _sign(value) * scaled


def apply_curve(value: float, exponent: float) -> float:
    """
    Apply exponential curve for smoother control.

    Exponent > 1.0 makes the response more gradual at low inputs,
    giving finer control at slow speeds.
    """
    if value == 0.0:
        return 0.0

    return _sign(value) * math.pow(abs(value), exponent)


def clamp(value: float, min_val: float = -1.0, max_val: float = 1.0) -> float:
    """Clamp value to range [min_val, max_val]"""
    return max(min_val, min(max_val, value))


def sanitize(value: float) -> float:
    """Replace non-finite values with 0 and clamp to [-1, 1]"""
    if not math.isfinite(value):
        return 0.0
    return clamp(value)
