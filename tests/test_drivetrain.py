"""Tests for the omni drive kinematics and heading lock"""

import math

import pytest

from omnidrive.drivetrain import Drivetrain
from omnidrive.errors import ConfigurationError
from omnidrive.hardware import MockGyro, MockMotors, MockRobot
from omnidrive.types import (
    CORNER_VECTORS,
    HALF_SQRT2,
    DrivetrainConfig,
    HeadingGains,
    Vector2D,
    WheelPosition,
)


FL = WheelPosition.FRONT_LEFT
FR = WheelPosition.FRONT_RIGHT
BL = WheelPosition.BACK_LEFT
BR = WheelPosition.BACK_RIGHT


def make_drivetrain(robot: MockRobot, **config) -> Drivetrain:
    return Drivetrain(
        actuators=robot.motors,
        gyro=robot.gyro,
        config=DrivetrainConfig(**config),
        telemetry=robot.telemetry,
        gains=robot.gains,
    )


def assert_outputs(outputs, fl, fr, bl, br):
    assert outputs.front_left == pytest.approx(fl, abs=1e-9)
    assert outputs.front_right == pytest.approx(fr, abs=1e-9)
    assert outputs.back_left == pytest.approx(bl, abs=1e-9)
    assert outputs.back_right == pytest.approx(br, abs=1e-9)


# Construction

def test_construction_applies_inversion_and_gains(robot, drivetrain):
    assert robot.motors.inverted[BL] is True
    assert robot.motors.inverted[FL] is False
    for wheel in WheelPosition:
        assert robot.motors.gains[wheel] == drivetrain.config.position_gains


@pytest.mark.parametrize("config", [
    {"wheel_circumference_cm": 0.0},
    {"wheel_circumference_cm": -4.0},
    {"motor_revs_per_wheel_rev": 0.0},
    {"counts_per_motor_rev": 0},
    {"tolerance": 0},
    {"tolerance": 100.0},
    {"arm_cycles": -1},
    {"period": 0.0},
    {"corner_vectors": {**CORNER_VECTORS, FL: Vector2D(1.0, 1.0)}},
    {"corner_vectors": {FL: CORNER_VECTORS[FL]}},
])
def test_invalid_config_rejected(robot, config):
    """Bad geometry is fatal at construction"""
    with pytest.raises(ConfigurationError):
        make_drivetrain(robot, **config)


# Translation

def test_forward(drivetrain):
    """Full forward drives all four wheels at full output"""
    outputs = drivetrain.omni_drive(Vector2D(0.0, 1.0), 0.0)
    assert_outputs(outputs, 1.0, 1.0, 1.0, 1.0)


def test_strafe_right(drivetrain):
    outputs = drivetrain.omni_drive(Vector2D(1.0, 0.0), 0.0)
    assert_outputs(outputs, 1.0, -1.0, -1.0, 1.0)


def test_diagonal_uses_one_wheel_pair(drivetrain):
    """Corner input is remapped so the active pair sees exactly full output"""
    outputs = drivetrain.omni_drive(Vector2D(1.0, 1.0), 0.0)
    assert_outputs(outputs, 1.0, 0.0, 0.0, 1.0)


def test_half_forward(drivetrain):
    outputs = drivetrain.omni_drive(Vector2D(0.0, 0.5), 0.0)
    assert_outputs(outputs, 0.5, 0.5, 0.5, 0.5)


def test_raw_outputs_bounded(drivetrain):
    """Everything inside the stick square stays inside [-1, 1]"""
    steps = [i / 8 for i in range(-8, 9)]
    for x in steps:
        for y in steps:
            outputs = drivetrain.omni_drive(Vector2D(x, y), 0.0)
            for value in outputs.as_tuple():
                assert -1.0 - 1e-9 <= value <= 1.0 + 1e-9


def test_out_of_range_input_clamped(drivetrain):
    outputs = drivetrain.omni_drive(Vector2D(0.0, 5.0), 0.0)
    assert_outputs(outputs, 1.0, 1.0, 1.0, 1.0)


def test_non_finite_input_zeroed(drivetrain):
    """NaN/inf never reach the wheels"""
    outputs = drivetrain.omni_drive(Vector2D(math.nan, 0.5), math.inf)
    assert_outputs(outputs, 0.5, 0.5, 0.5, 0.5)


# Rotation

def test_rotate_in_place(drivetrain):
    """Positive rotation is clockwise: left wheels forward, right wheels back"""
    outputs = drivetrain.omni_drive(Vector2D.zero(), 0.5)
    assert_outputs(outputs, 0.5, -0.5, 0.5, -0.5)


def test_translate_and_rotate_normalized(drivetrain):
    """Mixed commands are padded then scaled back into range"""
    outputs = drivetrain.omni_drive(Vector2D(0.0, 1.0), 0.5)
    assert_outputs(outputs, 1.0, 1.0 / 3, 1.0, 1.0 / 3)


def test_custom_shaper(robot):
    drivetrain = Drivetrain(
        actuators=robot.motors,
        gyro=robot.gyro,
        config=DrivetrainConfig(),
        shaper=lambda rotate, value, axis: value * 0.5,
    )
    outputs = drivetrain.omni_drive(Vector2D(0.0, 1.0), 0.0)
    assert_outputs(outputs, 0.5, 0.5, 0.5, 0.5)


# Heading lock

def test_stop_with_heading_on_target(drivetrain):
    """No translate, no rotate, no drift: every wheel is idle"""
    outputs = drivetrain.omni_drive(Vector2D.zero(), 0.0)
    assert outputs.is_stop


def test_stop_applies_heading_correction_only(robot):
    drivetrain = make_drivetrain(robot, heading_gains=HeadingGains(kp=0.01))
    robot.gyro.heading = 10.0

    outputs = drivetrain.stop()

    # Drifted clockwise, so correct counter-clockwise
    assert_outputs(outputs, -0.1, 0.1, -0.1, 0.1)


def test_rotate_arms_heading_lock(drivetrain, robot):
    robot.gyro.heading = 30.0
    drivetrain.omni_drive(Vector2D.zero(), 0.4)

    assert drivetrain.heading_lock.arm_countdown == 9
    assert drivetrain.heading_lock.target_angle == 30.0


def test_heading_captured_when_countdown_reaches_zero(drivetrain, robot):
    """One turn cycle, then ten idle cycles with the heading still moving"""
    robot.gyro.heading = 0.0
    drivetrain.omni_drive(Vector2D.zero(), 0.5)

    countdowns = []
    for cycle in range(1, 11):
        robot.gyro.heading = float(cycle)
        drivetrain.omni_drive(Vector2D.zero(), 0.0)
        countdowns.append(drivetrain.heading_lock.arm_countdown)

    assert countdowns == [8, 7, 6, 5, 4, 3, 2, 1, 0, 0]
    assert drivetrain.heading_lock.target_angle == 9.0
    assert min(countdowns) >= 0


def test_lock_not_used_while_arming(robot):
    """Heading error during the arming window does not turn the robot"""
    drivetrain = make_drivetrain(robot, heading_gains=HeadingGains(kp=0.05))
    drivetrain.omni_drive(Vector2D.zero(), 0.5)

    robot.gyro.heading = 20.0
    outputs = drivetrain.omni_drive(Vector2D.zero(), 0.0)

    assert outputs.is_stop
    assert drivetrain.heading_lock.target_angle == 20.0


def test_lock_corrects_drift_after_arming(robot):
    drivetrain = make_drivetrain(robot, heading_gains=HeadingGains(kp=0.05), arm_cycles=2)
    drivetrain.omni_drive(Vector2D.zero(), 0.5)
    drivetrain.omni_drive(Vector2D.zero(), 0.0)
    assert drivetrain.heading_lock.is_locked

    robot.gyro.heading = -4.0
    outputs = drivetrain.omni_drive(Vector2D(0.0, 0.5), 0.0)

    # Drifted counter-clockwise: left side speeds up, right side slows
    assert_outputs(outputs, 0.7, 0.3, 0.7, 0.3)


# Sensor faults

@pytest.fixture
def locked(robot):
    """Drivetrain holding heading 0 with the gyro drifted to 10 degrees"""
    drivetrain = make_drivetrain(robot, heading_gains=HeadingGains(kp=0.05))
    robot.gyro.heading = 10.0
    assert not drivetrain.stop().is_stop
    return drivetrain


def test_disconnected_gyro_forces_zero(locked, robot):
    robot.gyro.connected = False
    outputs = locked.stop()

    assert outputs.is_stop
    assert locked.heading_lock.arm_countdown == 9
    assert locked.heading_lock.target_angle == 0.0


def test_gyro_read_fault_forces_zero(locked, robot):
    robot.gyro.raise_fault = True
    assert locked.stop().is_stop


def test_non_finite_heading_forces_zero(locked, robot):
    robot.gyro.heading = math.nan
    assert locked.stop().is_stop


def test_gyro_recovery_recaptures_heading(locked, robot):
    robot.gyro.connected = False
    locked.stop()

    robot.gyro.connected = True
    for _ in range(9):
        assert locked.stop().is_stop

    assert locked.heading_lock.is_locked
    assert locked.heading_lock.target_angle == 10.0
    assert locked.stop().is_stop


def test_translation_continues_during_sensor_fault(locked, robot):
    robot.gyro.connected = False
    outputs = locked.omni_drive(Vector2D(0.0, 1.0), 0.0)
    assert_outputs(outputs, 1.0, 1.0, 1.0, 1.0)


# Actuator faults

def test_actuator_fault_drops_one_wheel(drivetrain, robot):
    robot.motors.faulty = {FR}
    outputs = drivetrain.omni_drive(Vector2D(0.0, 1.0), 0.0)

    assert_outputs(outputs, 1.0, 1.0, 1.0, 1.0)
    assert robot.motors.outputs[FR] == 0.0
    assert robot.motors.command_count == 3
    assert robot.motors.outputs[FL] == pytest.approx(1.0)
    assert robot.motors.outputs[BL] == pytest.approx(1.0)
    assert robot.motors.outputs[BR] == pytest.approx(1.0)


def test_actuator_fault_at_construction_is_logged(robot):
    robot.motors.faulty = {BL}
    make_drivetrain(robot)
    assert robot.motors.inverted[BL] is False


# Telemetry and gains

def test_outputs_published(drivetrain, robot):
    outputs = drivetrain.omni_drive(Vector2D(1.0, 0.0), 0.0)
    values = robot.telemetry.values
    assert values["Drivetrain Outputs/FRONT_LEFT Output"] == outputs.front_left
    assert values["Drivetrain Outputs/BACK_LEFT Output"] == outputs.back_left
    assert values["Gyro/Heading"] == 0.0
    assert robot.telemetry.publish_count >= 7


def test_telemetry_failure_ignored(robot):
    class BrokenTelemetry:
        def publish(self, key, value):
            raise RuntimeError("dashboard gone")

    drivetrain = Drivetrain(robot.motors, robot.gyro, DrivetrainConfig(), telemetry=BrokenTelemetry())
    outputs = drivetrain.omni_drive(Vector2D(0.0, 1.0), 0.0)
    assert_outputs(outputs, 1.0, 1.0, 1.0, 1.0)


def test_heading_gains_applied_next_cycle(drivetrain, robot):
    robot.gains.publish("Gyro PID/kP", 0.05)
    assert drivetrain.controller.gains.kp == 0.0

    drivetrain.stop()
    assert drivetrain.controller.gains.kp == 0.05


def test_position_gains_pushed_to_motors(drivetrain, robot):
    robot.gains.publish("Drivetrain PID/kF", 5.0)
    robot.gains.publish("Drivetrain PID/iZone", 30.0)
    drivetrain.stop()

    for wheel in WheelPosition:
        assert robot.motors.gains[wheel].kf == 5.0
        assert robot.motors.gains[wheel].izone == 30


def test_corner_projection_constants():
    """FL/BR and FR/BL share projection axes"""
    assert CORNER_VECTORS[FL] == CORNER_VECTORS[BR] == Vector2D(HALF_SQRT2, HALF_SQRT2)
    assert CORNER_VECTORS[FR] == CORNER_VECTORS[BL] == Vector2D(-HALF_SQRT2, HALF_SQRT2)


@pytest.mark.parametrize("bad", [math.nan, math.inf])
def test_non_finite_gain_ignored(drivetrain, robot, bad):
    """A corrupt tuning value keeps the previous gains and the wheels idle"""
    robot.gains.publish("Gyro PID/kP", bad)
    robot.gains.publish("Drivetrain PID/iZone", bad)

    assert drivetrain.stop().is_stop
    assert drivetrain.controller.gains.kp == 0.0
    assert robot.motors.gains[FL].izone == 0


def test_fractional_gain_on_int_config(robot):
    drivetrain = make_drivetrain(robot, heading_gains=HeadingGains(kp=1))
    robot.gains.publish("Gyro PID/kP", 0.05)
    drivetrain.stop()
    assert drivetrain.controller.gains.kp == 0.05


class BrokenBusGyro(MockGyro):
    def get_heading_degrees(self):
        raise OSError("SPI read failed")


def test_unexpected_gyro_error_is_sensor_fault(robot):
    drivetrain = Drivetrain(robot.motors, BrokenBusGyro(), DrivetrainConfig(heading_gains=HeadingGains(kp=0.05)))

    outputs = drivetrain.omni_drive(Vector2D(0.0, 0.5), 0.0)

    assert_outputs(outputs, 0.5, 0.5, 0.5, 0.5)
    assert drivetrain.heading_lock.arm_countdown == 9


class FlakyMotors(MockMotors):
    """Front-right controller raises something other than ActuatorFault"""

    def set_percent_output(self, wheel, value):
        if wheel == FR:
            raise RuntimeError("CAN frame timeout")
        super().set_percent_output(wheel, value)

    def get_position(self, wheel):
        if wheel == FR:
            raise OSError("CAN bus off")
        return super().get_position(wheel)


def test_unexpected_actuator_error_drops_one_wheel():
    motors = FlakyMotors()
    drivetrain = Drivetrain(motors, MockGyro(), DrivetrainConfig())

    drivetrain.omni_drive(Vector2D(0.0, 1.0), 0.0)

    assert motors.outputs[FR] == 0.0
    assert motors.outputs[FL] == pytest.approx(1.0)
    assert motors.outputs[BL] == pytest.approx(1.0)
    assert motors.outputs[BR] == pytest.approx(1.0)


def test_unexpected_position_error_leaves_wheel_untracked():
    motors = FlakyMotors()
    drivetrain = Drivetrain(motors, MockGyro(), DrivetrainConfig())

    target = drivetrain.translate(Vector2D(0.0, 50.0))

    assert target.targets[FR] is None
    assert motors.position_targets[BR] == target.targets[BR]
    assert drivetrain.is_done(target) is False
