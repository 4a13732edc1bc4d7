"""
DriveLoop - Fixed-period cooperative control loop around the Drivetrain.

The DriveLoop:
- Reads one DriveCommand per period from the InputProvider
- Calls Drivetrain.omni_drive with it (or stop() if input is missing/stale)
- Runs one deadline-bounded displacement via drive_to()
- Keeps going when a tick fails, stopping the wheels instead
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from .drivetrain import Drivetrain
from .interfaces import InputProvider
from .types import DriveCommand, LoopConfig, Vector2D, WheelOutputs


logger = logging.getLogger(__name__)


class DriveLoop:
    """
    Main control loop.

    Only this loop touches the drivetrain, so the heading controller
    state is never shared with another task.
    """

    def __init__(
        self,
        input_provider: InputProvider,
        drivetrain: Drivetrain,
        config: LoopConfig,
        on_tick: Optional[Callable[[WheelOutputs], Any]] = None,
    ) -> None:
        """
        Initialize loop.

        Args:
            input_provider: Source of drive commands
            drivetrain: Drivetrain to command
            config: Loop configuration
            on_tick: Optional hook called with each cycle's outputs
                     (mock hardware uses it to advance the simulation)
        """
        self.input = input_provider
        self.drivetrain = drivetrain
        self.config = config
        self.on_tick = on_tick

        self._running = False
        self._autonomous = False
        self.tick_count = 0

    async def run(self) -> None:
        """
        Main control loop - runs until stopped.

        Call this from an async context.
        """
        logger.info("Drive loop starting")
        self._running = True

        try:
            await self.input.start()

            while self._running:
                started = time.monotonic()
                if not self._autonomous:
                    self._update_safely(await self._read_command())
                elapsed = time.monotonic() - started
                await asyncio.sleep(max(0.0, self.config.loop_interval - elapsed))

        finally:
            logger.info("Drive loop stopping")
            await self._cleanup()

    def stop(self) -> None:
        """Stop the loop (takes effect at the next period)"""
        self._running = False

    async def drive_to(self, displacement: Vector2D, timeout: float) -> bool:
        """
        Move by `displacement` centimeters, giving up after `timeout` seconds.

        Operator input is ignored while the move runs.

        Returns:
            True if all wheels reached their targets before the deadline
        """
        self._autonomous = True
        try:
            target = self.drivetrain.translate(displacement)
            deadline = time.monotonic() + timeout

            while True:
                if self.drivetrain.is_done(target):
                    return True
                if time.monotonic() >= deadline:
                    errors = self.drivetrain.position_errors(target)
                    logger.warning(f"drive_to timed out after {timeout:.1f}s, remaining {errors}")
                    self._stop_drivetrain()
                    return False
                if self.on_tick is not None:
                    self.on_tick(self.drivetrain.last_outputs)
                await asyncio.sleep(self.config.loop_interval)
        finally:
            self._autonomous = False

    def tick(self, command: Optional[DriveCommand]) -> Optional[WheelOutputs]:
        """Run a single cycle with the given command (None stops)"""
        self.tick_count += 1

        if command is None:
            logger.debug("No input this cycle, stopping")
            return self.drivetrain.stop()

        age = time.time() - command.timestamp
        if age > self.config.input_timeout:
            logger.warning(f"Input watchdog: command is {age:.2f}s old, stopping")
            return self.drivetrain.stop()

        return self.drivetrain.omni_drive(command.translate, command.rotate)

    async def _read_command(self) -> Optional[DriveCommand]:
        try:
            return await self.input.read_drive_command()
        except Exception as e:
            logger.error(f"Error reading input: {e}", exc_info=True)
            return None

    def _update_safely(self, command: Optional[DriveCommand]) -> None:
        try:
            outputs = self.tick(command)
        except Exception as e:
            logger.error(f"Error in drive loop tick: {e}", exc_info=True)
            outputs = self._stop_drivetrain()

        if outputs is not None and self.on_tick is not None:
            self.on_tick(outputs)

    def _stop_drivetrain(self) -> Optional[WheelOutputs]:
        try:
            return self.drivetrain.stop()
        except Exception as e:
            logger.critical(f"Failed to stop drivetrain: {e}", exc_info=True)
            return None

    async def _cleanup(self) -> None:
        """Cleanup on shutdown"""
        self._stop_drivetrain()
        try:
            await self.input.stop()
        except Exception as e:
            logger.error(f"Error during cleanup: {e}", exc_info=True)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_autonomous(self) -> bool:
        return self._autonomous
