"""
Drivetrain - Omnidirectional drive for a four-wheel holonomic chassis.

This is the per-cycle core. The Drivetrain:
- Maps translate + rotate intent onto four corner wheels
- Holds heading with a PID lock whenever no rotation is commanded
- Converts relative displacements into absolute encoder targets
- Isolates sensor and single-wheel actuator faults from the loop

Nothing in here blocks, and nothing raises out of omni_drive, translate
or is_done.
"""

import logging
import math
from typing import Dict, Optional

from .errors import ActuatorFault, ConfigurationError, SensorFault
from .heading import GainCell, HeadingController
from .interfaces import Actuators, GainChannel, HeadingSensor, TelemetrySink
from .shaping import DEFAULT_SHAPER, Shaper, clamp, sanitize
from .types import (
    HALF_SQRT2,
    DrivetrainConfig,
    HeadingGains,
    HeadingLockState,
    PositionLoopGains,
    PositionTarget,
    TargetState,
    Vector2D,
    WheelOutputs,
    WheelPosition,
)


logger = logging.getLogger(__name__)

HEADING_GAIN_KEYS = {
    "Gyro PID/kP": "kp",
    "Gyro PID/kI": "ki",
    "Gyro PID/kD": "kd",
}

POSITION_GAIN_KEYS = {
    "Drivetrain PID/kP": "kp",
    "Drivetrain PID/kI": "ki",
    "Drivetrain PID/kD": "kd",
    "Drivetrain PID/kF": "kf",
    "Drivetrain PID/iZone": "izone",
}


def validate_config(config: DrivetrainConfig) -> None:
    """
    Reject geometry and constants the drivetrain cannot work with.

    Raises:
        ConfigurationError: on the first invalid value found
    """
    missing = set(WheelPosition) - set(config.corner_vectors)
    if missing:
        names = ", ".join(sorted(w.name for w in missing))
        raise ConfigurationError(f"Missing corner vectors for: {names}")

    for wheel, vector in config.corner_vectors.items():
        if not vector.is_finite or not math.isclose(vector.magnitude, 1.0, abs_tol=1e-6):
            raise ConfigurationError(
                f"{wheel.name} corner vector must be unit length, got |{vector}| = {vector.magnitude}"
            )

    positive = [
        ("wheel_circumference_cm", config.wheel_circumference_cm),
        ("motor_revs_per_wheel_rev", config.motor_revs_per_wheel_rev),
        ("counts_per_motor_rev", config.counts_per_motor_rev),
        ("period", config.period),
    ]
    for name, value in positive:
        if not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be positive, got {value}")

    if isinstance(config.tolerance, bool) or not isinstance(config.tolerance, int) or config.tolerance <= 0:
        raise ConfigurationError(f"tolerance must be a positive int, got {config.tolerance!r}")

    if config.arm_cycles < 0:
        raise ConfigurationError(f"arm_cycles must not be negative, got {config.arm_cycles}")


class Drivetrain:
    """
    Four-wheel omni drive with heading lock and position moves.

    Build it once and hand it to whatever issues drive commands.
    """

    def __init__(
        self,
        actuators: Actuators,
        gyro: HeadingSensor,
        config: DrivetrainConfig,
        telemetry: Optional[TelemetrySink] = None,
        gains: Optional[GainChannel] = None,
        shaper: Shaper = DEFAULT_SHAPER,
    ) -> None:
        """
        Initialize drivetrain.

        Args:
            actuators: Wheel motor controllers
            gyro: Heading sensor
            config: Geometry, conversion constants and initial gains
            telemetry: Optional sink for wheel outputs and heading
            gains: Optional channel delivering runtime gain updates
            shaper: Minimum-output floor function applied to each wheel

        Raises:
            ConfigurationError: if the geometry or constants are invalid
        """
        validate_config(config)

        self.actuators = actuators
        self.gyro = gyro
        self.config = config
        self.telemetry = telemetry
        self.shaper = shaper

        self.heading_lock = HeadingLockState()
        self.controller = HeadingController(config.heading_gains, config.period)
        self.heading_gains: GainCell[HeadingGains] = GainCell(config.heading_gains)
        self.position_gains: GainCell[PositionLoopGains] = GainCell(config.position_gains)

        self._active_target: Optional[PositionTarget] = None
        self._sensor_ok = True
        self._last_outputs = WheelOutputs(0.0, 0.0, 0.0, 0.0)

        for wheel in WheelPosition:
            self._call(wheel, "set_inverted", wheel, config.inverted.get(wheel, False))
            self._call(wheel, "configure_position_loop", wheel, config.position_gains)

        if gains is not None:
            self.heading_gains.bind(gains, HEADING_GAIN_KEYS)
            self.position_gains.bind(gains, POSITION_GAIN_KEYS)

        logger.info(
            f"Drivetrain ready (gyro connected={self._gyro_connected()}, "
            f"{config.cm_to_counts(1.0)} counts/cm)"
        )

    # Per-cycle drive

    def omni_drive(self, translate: Vector2D, rotate: float) -> WheelOutputs:
        """
        Drive the robot by setting the output of each wheel.

        Args:
            translate: Desired movement direction, percent output per axis
            rotate: Desired rotation amount (positive is clockwise)

        Returns:
            The four outputs sent to the wheels
        """
        self._drain_gains()
        self._supersede_target()

        translate, rotate = self._sanitize_inputs(translate, rotate)
        heading = self._read_heading()
        lock = self.heading_lock

        translate = translate.map_square_to_diamond().divide(HALF_SQRT2)

        rotation = 0.0
        if rotate != 0:
            lock.arm_countdown = self.config.arm_cycles
            rotation = rotate

        if heading is None:
            # Re-arm so the target is recaptured once readings are valid again
            lock.arm_countdown = max(lock.arm_countdown, self.config.arm_cycles)

        if lock.arm_countdown > 0:
            if heading is not None:
                lock.target_angle = heading
            lock.arm_countdown -= 1

        correction = self._heading_correction(heading)
        if rotate == 0 and lock.arm_countdown == 0:
            rotation = clamp(correction)

        values: Dict[WheelPosition, float] = {}
        for wheel, corner in self.config.corner_vectors.items():
            component = self.shaper(rotate, translate.dot(corner), False)
            values[wheel] = component + rotation if wheel.is_left else component - rotation

        peak = max(abs(v) for v in values.values())
        if peak > 1.0:
            values = {wheel: v / peak for wheel, v in values.items()}

        outputs = WheelOutputs.from_mapping(values)
        self.set_motor_outputs(outputs)
        return outputs

    def stop(self) -> WheelOutputs:
        """Stop translating and rotating (heading lock stays active)"""
        return self.omni_drive(Vector2D.zero(), 0.0)

    def set_motor_outputs(self, outputs: WheelOutputs) -> None:
        """Send percent outputs to all wheels and report them"""
        for wheel, value in outputs.items():
            self._call(wheel, "set_percent_output", wheel, value)
            self._publish(f"Drivetrain Outputs/{wheel.name} Output", value)
        self._last_outputs = outputs

    @property
    def last_outputs(self) -> WheelOutputs:
        return self._last_outputs

    # Autonomous displacement

    def translate(self, displacement: Vector2D) -> PositionTarget:
        """
        Used to drive the robot autonomously a certain distance.

        Args:
            displacement: Desired translation relative to the current pose (cm)

        Returns:
            A PositionTarget to poll with is_done()
        """
        self._drain_gains()
        self._supersede_target()

        if not displacement.is_finite:
            logger.warning(f"Rejecting non-finite displacement {displacement}, holding position")
            displacement = Vector2D.zero()

        targets: Dict[WheelPosition, Optional[int]] = {}
        for wheel, corner in self.config.corner_vectors.items():
            delta = self.config.cm_to_counts(displacement.dot(corner))
            current = self._read_position(wheel)
            if current is None:
                targets[wheel] = None
                continue
            targets[wheel] = current + delta
            self._call(wheel, "set_position_target", wheel, targets[wheel])

        # Wheels are in position mode now, no percent output applies
        self._last_outputs = WheelOutputs(0.0, 0.0, 0.0, 0.0)
        target = PositionTarget(targets=targets, tolerance=self.config.tolerance)
        self._active_target = target
        logger.info(f"Translate {displacement.x:+.1f}, {displacement.y:+.1f} cm -> {self._format_targets(target)}")
        return target

    def is_done(self, target: PositionTarget) -> bool:
        """
        Check whether all four wheels are within tolerance of their targets.

        There is no timeout here; an unreachable target stays not-done
        and the caller decides when to give up.
        """
        if target.state == TargetState.COMPLETE:
            return True
        if target.state == TargetState.SUPERSEDED:
            return False

        target.state = TargetState.POLLING
        errors = self.position_errors(target)
        done = all(
            error is not None and abs(error) <= target.tolerance
            for error in errors.values()
        )
        if done:
            target.state = TargetState.COMPLETE
            if self._active_target is target:
                self._active_target = None
            logger.info("Translate complete")
        else:
            logger.debug(f"Translate remaining: {self._format_errors(errors)}")
        return done

    def position_errors(self, target: PositionTarget) -> Dict[WheelPosition, Optional[int]]:
        """Remaining counts per wheel (None where target or position is unknown)"""
        errors: Dict[WheelPosition, Optional[int]] = {}
        for wheel in WheelPosition:
            goal = target.targets.get(wheel)
            current = self._read_position(wheel) if goal is not None else None
            errors[wheel] = None if goal is None or current is None else goal - current
        return errors

    @property
    def active_target(self) -> Optional[PositionTarget]:
        return self._active_target

    # Internals

    def _drain_gains(self) -> None:
        heading_gains = self.heading_gains.drain()
        if heading_gains is not None:
            self.controller.set_gains(heading_gains)
            logger.debug(f"Heading gains applied: {heading_gains}")

        position_gains = self.position_gains.drain()
        if position_gains is not None:
            for wheel in WheelPosition:
                self._call(wheel, "configure_position_loop", wheel, position_gains)
            logger.debug(f"Position gains applied: {position_gains}")

    def _supersede_target(self) -> None:
        target = self._active_target
        if target is not None and not target.is_terminal:
            target.state = TargetState.SUPERSEDED
            logger.info("Previous translate superseded")
        self._active_target = None

    def _sanitize_inputs(self, translate: Vector2D, rotate: float) -> tuple[Vector2D, float]:
        if not translate.is_finite or not math.isfinite(rotate):
            logger.warning(f"Non-finite drive input translate={translate} rotate={rotate}, zeroing")
        return Vector2D(sanitize(translate.x), sanitize(translate.y)), sanitize(rotate)

    def _read_heading(self) -> Optional[float]:
        """Heading for this cycle, or None if the sensor can't be trusted"""
        reason = None
        heading = None
        try:
            if not self.gyro.is_connected():
                reason = "gyro disconnected"
            else:
                heading = float(self.gyro.get_heading_degrees())
                if not math.isfinite(heading):
                    reason = f"gyro returned {heading}"
                    heading = None
        except SensorFault as e:
            reason = str(e)
        except Exception as e:
            reason = f"gyro read error: {e!r}"

        if reason is not None:
            if self._sensor_ok:
                logger.warning(f"Heading lock disabled: {reason}")
                self._sensor_ok = False
            return None

        if not self._sensor_ok:
            logger.info("Heading sensor recovered, re-arming heading lock")
            self._sensor_ok = True
        self._publish("Gyro/Heading", heading)
        return heading

    def _heading_correction(self, heading: Optional[float]) -> float:
        if heading is None:
            self.controller.reset()
            return 0.0
        output = self.controller.step(heading, self.heading_lock.target_angle)
        self._publish("Gyro/Target", self.heading_lock.target_angle)
        self._publish("Gyro/Correction", output)
        return output

    def _read_position(self, wheel: WheelPosition) -> Optional[int]:
        try:
            return int(self.actuators.get_position(wheel))
        except ActuatorFault as e:
            logger.warning(f"{wheel.name} position read failed: {e}")
            return None
        except Exception as e:
            logger.error(f"{wheel.name} position read error: {e!r}", exc_info=True)
            return None

    def _call(self, wheel: WheelPosition, method: str, *args) -> bool:
        """Invoke one actuator method, dropping the command on fault"""
        try:
            getattr(self.actuators, method)(*args)
            return True
        except ActuatorFault as e:
            logger.error(f"{wheel.name} {method} failed, command dropped: {e}")
            return False
        except Exception as e:
            logger.error(f"{wheel.name} {method} raised {e!r}, command dropped", exc_info=True)
            return False

    def _publish(self, key: str, value: float) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.publish(key, value)
        except Exception as e:
            logger.debug(f"Telemetry publish {key} failed: {e}")

    def _gyro_connected(self) -> bool:
        try:
            return bool(self.gyro.is_connected())
        except Exception:
            return False

    @staticmethod
    def _format_targets(target: PositionTarget) -> str:
        return ", ".join(f"{w.name.lower()}: {target.targets.get(w)}" for w in WheelPosition)

    @staticmethod
    def _format_errors(errors: Dict[WheelPosition, Optional[int]]) -> str:
        return ", ".join(f"{w.name.lower()}: {errors[w]}" for w in WheelPosition)
