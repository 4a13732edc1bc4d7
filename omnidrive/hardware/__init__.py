"""
Mock hardware - For testing without a robot.

Simulates wheel motor controllers with encoders, a gyro, a telemetry
sink and a gain-tuning channel, all in memory.
"""

import logging
import math
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Set

from omnidrive.errors import ActuatorFault, SensorFault
from omnidrive.types import PositionLoopGains, WheelOutputs, WheelPosition


logger = logging.getLogger(__name__)


class MockMotors:
    """
    Four simulated motor controllers with quadrature encoders.

    Percent output moves the encoder by `counts_per_tick * output` on
    every tick(); position mode steps towards the target by at most
    `counts_per_tick`. Wheels listed in `faulty` raise ActuatorFault.
    """

    def __init__(self, counts_per_tick: int = 50) -> None:
        """
        Initialize mock motors.

        Args:
            counts_per_tick: Encoder counts travelled per tick at full output
        """
        self.counts_per_tick = counts_per_tick
        self.faulty: Set[WheelPosition] = set()

        self.positions: Dict[WheelPosition, int] = {w: 0 for w in WheelPosition}
        self.outputs: Dict[WheelPosition, float] = {w: 0.0 for w in WheelPosition}
        self.position_targets: Dict[WheelPosition, Optional[int]] = {w: None for w in WheelPosition}
        self.inverted: Dict[WheelPosition, bool] = {w: False for w in WheelPosition}
        self.gains: Dict[WheelPosition, Optional[PositionLoopGains]] = {w: None for w in WheelPosition}
        self.command_count = 0

    def _check(self, wheel: WheelPosition) -> None:
        if wheel in self.faulty:
            raise ActuatorFault(f"[MOCK] {wheel.name} controller not responding", wheel)

    def set_percent_output(self, wheel: WheelPosition, value: float) -> None:
        self._check(wheel)
        self.outputs[wheel] = value
        self.position_targets[wheel] = None
        self.command_count += 1

    def set_position_target(self, wheel: WheelPosition, counts: int) -> None:
        self._check(wheel)
        self.position_targets[wheel] = counts
        self.command_count += 1

    def get_position(self, wheel: WheelPosition) -> int:
        self._check(wheel)
        return self.positions[wheel]

    def set_inverted(self, wheel: WheelPosition, inverted: bool) -> None:
        self._check(wheel)
        self.inverted[wheel] = inverted

    def configure_position_loop(self, wheel: WheelPosition, gains: PositionLoopGains) -> None:
        self._check(wheel)
        self.gains[wheel] = gains

    def tick(self) -> None:
        """Advance the simulated encoders by one control period"""
        for wheel in WheelPosition:
            target = self.position_targets[wheel]
            if target is None:
                self.positions[wheel] += int(round(self.outputs[wheel] * self.counts_per_tick))
                continue
            delta = target - self.positions[wheel]
            step = max(-self.counts_per_tick, min(self.counts_per_tick, delta))
            self.positions[wheel] += step


class MockGyro:
    """
    Simulated gyro.

    Heading is set directly or accumulates `drift` degrees per tick.
    """

    def __init__(self, heading: float = 0.0, drift: float = 0.0) -> None:
        self.heading = heading
        self.drift = drift
        self.connected = True
        self.raise_fault = False

    def get_heading_degrees(self) -> float:
        if self.raise_fault:
            raise SensorFault("[MOCK] gyro read failed")
        return self.heading

    def is_connected(self) -> bool:
        return self.connected

    def tick(self, rotation: float = 0.0, degrees_per_tick: float = 0.0) -> None:
        """Apply drift plus `rotation * degrees_per_tick` of commanded turn"""
        if math.isfinite(self.heading):
            self.heading += self.drift + rotation * degrees_per_tick


class MockTelemetry:
    """Keeps the latest value per key plus a publish counter"""

    def __init__(self) -> None:
        self.values: Dict[str, float] = {}
        self.publish_count = 0

    def publish(self, key: str, value: float) -> None:
        self.values[key] = value
        self.publish_count += 1
        logger.debug(f"[MOCK] {key} = {value:+.3f}")


class MockGainChannel:
    """
    In-memory tuning channel.

    publish() calls subscribers on the caller's thread, so a test or a
    dashboard thread plays the part of the asynchronous tuning UI.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Callable[[float], None]]] = defaultdict(list)
        self.values: Dict[str, float] = {}

    def subscribe(self, key: str, callback: Callable[[float], None]) -> None:
        with self._lock:
            self._subscribers[key].append(callback)
            current = self.values.get(key)
        if current is not None:
            callback(current)

    def publish(self, key: str, value: float) -> None:
        with self._lock:
            self.values[key] = value
            callbacks = list(self._subscribers.get(key, []))
        for callback in callbacks:
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Error in gain callback for {key}: {e}", exc_info=True)


class MockRobot:
    """
    The four mocks wired together.

    Pass `robot.tick` as the DriveLoop's on_tick hook: it advances the
    encoders and turns the gyro by the rotation implied by the outputs.
    """

    def __init__(self, counts_per_tick: int = 50, degrees_per_tick: float = 3.0, drift: float = 0.0) -> None:
        self.motors = MockMotors(counts_per_tick)
        self.gyro = MockGyro(drift=drift)
        self.telemetry = MockTelemetry()
        self.gains = MockGainChannel()
        self.degrees_per_tick = degrees_per_tick

    def tick(self, outputs: WheelOutputs) -> None:
        left = outputs.front_left + outputs.back_left
        right = outputs.front_right + outputs.back_right
        self.motors.tick()
        self.gyro.tick((left - right) / 4, self.degrees_per_tick)
