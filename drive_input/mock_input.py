"""
Mock (test) input provider.

Replays scripted drive commands for testing without a gamepad.
"""

import logging
import time
from dataclasses import replace
from typing import List, Optional

from omnidrive.types import DriveCommand, Vector2D


logger = logging.getLogger(__name__)


class MockInput:
    """
    Mock input provider for testing.

    Returns one scripted command per read, then keeps repeating the last
    one (or a stop command if the script is empty). Commands are
    re-stamped when read so the loop's input watchdog sees them as fresh.
    """

    def __init__(self, commands: Optional[List[DriveCommand]] = None, loop: bool = False) -> None:
        """
        Initialize mock input.

        Args:
            commands: Commands to return in sequence
            loop: Restart from the beginning when the script runs out
        """
        self._commands = commands or []
        self._loop = loop
        self._index = 0
        self._running = False

    async def start(self) -> None:
        """Start the input provider"""
        logger.info(f"[MOCK INPUT] Started - Script mode ({len(self._commands)} commands)")
        self._running = True
        self._index = 0

    async def stop(self) -> None:
        """Stop the input provider"""
        logger.info("[MOCK INPUT] Stopped")
        self._running = False

    async def read_drive_command(self) -> Optional[DriveCommand]:
        """Return next scripted command"""
        if not self._running:
            return None

        if not self._commands:
            return DriveCommand.stop()

        if self._index >= len(self._commands):
            if self._loop:
                self._index = 0
            else:
                return replace(self._commands[-1], timestamp=time.time())

        command = self._commands[self._index]
        self._index += 1
        return replace(command, timestamp=time.time())

    @property
    def finished(self) -> bool:
        """True once every scripted command has been returned"""
        return self._index >= len(self._commands)

    def reset(self) -> None:
        """Reset to beginning of script"""
        self._index = 0

    def load_script(self, script_name: str) -> None:
        """
        Load a predefined test script.

        Args:
            script_name: Name of script to load from TestScripts
        """
        script_map = {
            "forward": TestScripts.forward_drive,
            "strafe": TestScripts.strafe,
            "spin_then_hold": TestScripts.spin_then_hold,
            "diagonal": TestScripts.diagonal,
        }

        if script_name in script_map:
            self._commands = script_map[script_name]()
            logger.info(f"Loaded script '{script_name}' with {len(self._commands)} commands")
        else:
            logger.warning(f"Unknown script '{script_name}'")


def _repeat(translate: Vector2D, rotate: float, count: int) -> List[DriveCommand]:
    return [DriveCommand(translate=translate, rotate=rotate) for _ in range(count)]


class TestScripts:
    """Pre-defined test scripts (50 Hz, so 50 commands is one second)"""

    __test__ = False  # not a pytest class

    @staticmethod
    def forward_drive() -> List[DriveCommand]:
        """Accelerate forward, cruise, stop"""
        return (
            _repeat(Vector2D.zero(), 0.0, 5)
            + _repeat(Vector2D(0.0, 0.3), 0.0, 10)
            + _repeat(Vector2D(0.0, 0.7), 0.0, 30)
            + _repeat(Vector2D(0.0, 0.3), 0.0, 10)
            + _repeat(Vector2D.zero(), 0.0, 5)
        )

    @staticmethod
    def strafe() -> List[DriveCommand]:
        """Slide right then left without turning"""
        return (
            _repeat(Vector2D(0.6, 0.0), 0.0, 25)
            + _repeat(Vector2D(-0.6, 0.0), 0.0, 25)
            + _repeat(Vector2D.zero(), 0.0, 5)
        )

    @staticmethod
    def spin_then_hold() -> List[DriveCommand]:
        """Turn clockwise, release, then drive forward on the new heading"""
        return (
            _repeat(Vector2D.zero(), 0.5, 20)
            + _repeat(Vector2D.zero(), 0.0, 15)
            + _repeat(Vector2D(0.0, 0.5), 0.0, 25)
            + _repeat(Vector2D.zero(), 0.0, 5)
        )

    @staticmethod
    def diagonal() -> List[DriveCommand]:
        """Full stick into each corner of the square"""
        return (
            _repeat(Vector2D(1.0, 1.0), 0.0, 10)
            + _repeat(Vector2D(-1.0, 1.0), 0.0, 10)
            + _repeat(Vector2D(-1.0, -1.0), 0.0, 10)
            + _repeat(Vector2D(1.0, -1.0), 0.0, 10)
            + _repeat(Vector2D.zero(), 0.0, 5)
        )
