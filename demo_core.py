#!/usr/bin/env python3
"""
omnidrive Core Demo - Simple example application.

Drives the mock robot through a scripted teleop sequence with a drifting
gyro, then runs one autonomous displacement.
"""

import asyncio
import logging
import sys

from omnidrive.drivetrain import Drivetrain
from omnidrive.hardware import MockRobot
from omnidrive.loop import DriveLoop
from omnidrive.types import DrivetrainConfig, HeadingGains, LoopConfig, Vector2D
from drive_input import MockInput


logger = logging.getLogger(__name__)


def build_mock_stack(input_provider, drivetrain_config: DrivetrainConfig, loop_config: LoopConfig, drift: float = 0.0):
    """Wire a DriveLoop to a MockRobot; returns (robot, drivetrain, loop)"""
    robot = MockRobot(drift=drift)
    drivetrain = Drivetrain(
        actuators=robot.motors,
        gyro=robot.gyro,
        config=drivetrain_config,
        telemetry=robot.telemetry,
        gains=robot.gains,
    )
    loop = DriveLoop(input_provider, drivetrain, loop_config, on_tick=robot.tick)
    return robot, drivetrain, loop


async def run_demo(script: str = "spin_then_hold"):
    """Run a simple demo with mock components"""

    logger.info("=" * 60)
    logger.info("omnidrive Core Demo")
    logger.info("=" * 60)

    input_provider = MockInput()
    input_provider.load_script(script)

    robot, drivetrain, loop = build_mock_stack(
        input_provider,
        DrivetrainConfig(heading_gains=HeadingGains(kp=0.02, ki=0.0, kd=0.001)),
        LoopConfig(loop_interval=0.02),
        drift=0.2,
    )

    loop_task = asyncio.create_task(loop.run())

    while not input_provider.finished:
        await asyncio.sleep(0.1)
        lock = drivetrain.heading_lock
        logger.info(
            f"Heading {robot.gyro.heading:+7.2f} | target {lock.target_angle:+7.2f} | "
            f"outputs {', '.join(f'{v:+.2f}' for v in drivetrain.last_outputs.as_tuple())}"
        )

    # Retune the heading lock from "outside" the loop
    robot.gains.publish("Gyro PID/kP", 0.03)

    logger.info("-" * 60)
    logger.info("Autonomous: 50 cm forward")
    done = await loop.drive_to(Vector2D(0.0, 50.0), timeout=3.0)
    logger.info(f"Autonomous move {'completed' if done else 'timed out'}")
    logger.info(f"Encoders: {dict((w.name, p) for w, p in robot.motors.positions.items())}")

    loop.stop()
    await loop_task

    logger.info("=" * 60)
    logger.info("Demo finished")
    logger.info("=" * 60)


def main():
    """Main entry point"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        logger.info("\nDemo interrupted by user")
    except Exception as e:
        logger.error(f"Demo failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
