"""Shared fixtures: a drivetrain wired to the mock robot"""

import pytest

from omnidrive.drivetrain import Drivetrain
from omnidrive.hardware import MockRobot
from omnidrive.types import DrivetrainConfig


@pytest.fixture
def robot():
    """Mock robot with default simulation speeds"""
    return MockRobot()


@pytest.fixture
def drivetrain(robot):
    """Drivetrain with default config (heading gains all zero)"""
    return Drivetrain(
        actuators=robot.motors,
        gyro=robot.gyro,
        config=DrivetrainConfig(),
        telemetry=robot.telemetry,
        gains=robot.gains,
    )
