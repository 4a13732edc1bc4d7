"""
Heading lock - PID correction back to a captured heading.

The controller is a plain per-cycle step function: the drivetrain feeds
it the heading read at the top of the cycle and uses the return value
directly. Gains arrive asynchronously through a GainCell and are drained
once per cycle, so a cycle never sees a half-updated set.
"""

import logging
import math
import threading
from dataclasses import fields, replace
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

from .interfaces import GainChannel
from .shaping import clamp
from .types import HeadingGains


logger = logging.getLogger(__name__)

G = TypeVar("G")


class HeadingController:
    """
    Discrete PID controller with anti-windup clamping.

    Input is the continuous gyro heading in degrees, setpoint is the
    locked target angle, output is a rotation term in [-1, 1].
    """

    def __init__(self, gains: HeadingGains, period: float = 0.02) -> None:
        """
        Initialize controller.

        Args:
            gains: Initial PID gains
            period: Control period in seconds (integral/derivative dt)
        """
        self._gains = gains
        self._period = period
        self._integral = 0.0
        self._prev_error: Optional[float] = None

    @property
    def gains(self) -> HeadingGains:
        return self._gains

    def set_gains(self, gains: HeadingGains) -> None:
        """Swap in a new gain snapshot (call only from the control loop)"""
        if gains.ki != self._gains.ki:
            # Accumulated error was scaled for the old ki
            self._integral = 0.0
        self._gains = gains

    def step(self, measurement: float, setpoint: float) -> float:
        """
        Compute this cycle's output.

        Args:
            measurement: Current heading (degrees)
            setpoint: Target heading (degrees)

        Returns:
            Rotation correction clamped to [-1, 1] (positive is clockwise)
        """
        gains = self._gains
        dt = self._period
        error = setpoint - measurement

        p = gains.kp * error

        if gains.ki != 0.0:
            self._integral += error * dt
            max_integral = 1.0 / abs(gains.ki)
            self._integral = clamp(self._integral, -max_integral, max_integral)
        i = gains.ki * self._integral

        d = 0.0
        if self._prev_error is not None:
            d = gains.kd * (error - self._prev_error) / dt
        self._prev_error = error

        output = p + i + d
        if not math.isfinite(output):
            logger.warning(f"Heading PID produced {output}, resetting")
            self.reset()
            return 0.0
        return clamp(output)

    def reset(self) -> None:
        """Zero all internal state"""
        self._integral = 0.0
        self._prev_error = None


class GainCell(Generic[G]):
    """
    Latest-value cell for gains delivered from outside the control loop.

    Writers replace the whole (version, snapshot) pair under a lock that
    is held only for the assignment. The loop reads the pair with a
    single attribute load, so it never blocks and never sees a mix of
    old and new fields.
    """

    def __init__(self, initial: G) -> None:
        self._lock = threading.Lock()
        self._slot: Tuple[int, G] = (0, initial)
        self._seen = 0

    @property
    def value(self) -> G:
        return self._slot[1]

    def set(self, gains: G) -> None:
        """Replace the whole snapshot"""
        with self._lock:
            version, _ = self._slot
            self._slot = (version + 1, gains)

    def update(self, **fields: Any) -> None:
        """Replace some fields of the current snapshot"""
        with self._lock:
            version, current = self._slot
            self._slot = (version + 1, replace(current, **fields))

    def drain(self) -> Optional[G]:
        """
        Return the newest snapshot if it changed since the last drain.

        Must only be called from the control loop.
        """
        version, gains = self._slot
        if version == self._seen:
            return None
        self._seen = version
        return gains

    def bind(self, channel: GainChannel, keys: Dict[str, str]) -> None:
        """
        Subscribe each channel key to one field of the snapshot.

        Args:
            channel: Source of gain updates
            keys: Mapping of channel key -> dataclass field name
        """
        for key, field_name in keys.items():
            channel.subscribe(key, self._make_callback(key, field_name))

    def _make_callback(self, key: str, field_name: str):
        declared = {f.name: f.type for f in fields(self.value)}[field_name]

        def on_change(value: float) -> None:
            try:
                number = float(value)
            except (TypeError, ValueError):
                number = math.nan
            if not math.isfinite(number):
                logger.warning(f"Ignoring {key} = {value!r}, keeping {getattr(self.value, field_name)}")
                return
            new_value = int(number) if declared is int else number
            self.update(**{field_name: new_value})
            logger.info(f"{key} updated to {new_value}")
        return on_change
