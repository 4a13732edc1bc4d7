"""
Gamepad Input Provider

Reads drive input from USB/wireless game controllers via pygame.
"""

import logging
from typing import Optional

import pygame

from omnidrive.shaping import apply_curve, apply_deadzone
from omnidrive.types import DriveCommand, Vector2D


logger = logging.getLogger(__name__)


class GamepadInput:
    """
    Game controller input provider.

    Maps gamepad controls to omni drive intent:
    - Left stick: Translate (strafe / forward)
    - Right stick X: Rotate (right = clockwise)
    - Left bumper held: Precision mode (half output)
    """

    def __init__(
        self,
        deadzone: float = 0.1,
        curve: float = 2.0,
        invert_y: bool = True,
        rotate_axis: int = 3,
        precision_scale: float = 0.5,
    ) -> None:
        """
        Initialize gamepad input.

        Args:
            deadzone: Ignore stick movements below this threshold
            curve: Response curve exponent (1.0 = linear)
            invert_y: Invert Y-axis (most controllers report up as negative)
            rotate_axis: Axis index of the right stick X (2 on some controllers)
            precision_scale: Output scale while the precision button is held
        """
        self._deadzone = deadzone
        self._curve = curve
        self._invert_y = invert_y
        self._precision_scale = precision_scale

        self._joystick: Optional[pygame.joystick.Joystick] = None
        self._running = False

        self._axis_x = 0         # Left stick X
        self._axis_y = 1         # Left stick Y
        self._axis_rotate = rotate_axis
        self._button_precision = 4

    async def start(self) -> None:
        """Initialize pygame and connect to controller"""
        if self._running:
            return

        logger.info("Initializing gamepad input...")

        pygame.init()
        pygame.joystick.init()

        joystick_count = pygame.joystick.get_count()
        logger.info(f"Found {joystick_count} game controller(s)")

        if joystick_count == 0:
            raise RuntimeError("No game controllers found")

        self._joystick = pygame.joystick.Joystick(0)
        self._joystick.init()
        logger.info(f"Selected: {self._joystick.get_name()}")
        logger.info(f"Axes: {self._joystick.get_numaxes()}  Buttons: {self._joystick.get_numbuttons()}")

        if self._joystick.get_numaxes() <= self._axis_rotate:
            logger.warning(f"Controller has no axis {self._axis_rotate}, rotation disabled")

        logger.info("Controls:")
        logger.info("  Left stick: Translate")
        logger.info("  Right stick X: Rotate")
        logger.info("  LB: Precision mode")

        self._running = True

    async def stop(self) -> None:
        """Disconnect from controller"""
        logger.info("Stopping gamepad input")
        self._running = False

        if self._joystick:
            self._joystick.quit()
            self._joystick = None

        pygame.joystick.quit()
        pygame.quit()

    async def read_drive_command(self) -> Optional[DriveCommand]:
        """Read current controller state"""
        if not self._running or not self._joystick:
            return None

        # Process pygame events (required to update joystick state)
        pygame.event.pump()

        x = self._shape(self._joystick.get_axis(self._axis_x))
        y = self._shape(self._joystick.get_axis(self._axis_y))
        rotate = 0.0
        if self._joystick.get_numaxes() > self._axis_rotate:
            rotate = self._shape(self._joystick.get_axis(self._axis_rotate))

        if self._invert_y:
            y = -y

        if self._joystick.get_numbuttons() > self._button_precision:
            if self._joystick.get_button(self._button_precision):
                x *= self._precision_scale
                y *= self._precision_scale
                rotate *= self._precision_scale

        logger.debug(f"Stick: x={x:+.2f} y={y:+.2f} rotate={rotate:+.2f}")

        return DriveCommand(translate=Vector2D(x, y), rotate=rotate)

    def _shape(self, raw: float) -> float:
        value = max(-1.0, min(1.0, raw))
        return apply_curve(apply_deadzone(value, self._deadzone), self._curve)
