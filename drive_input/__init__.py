"""Input provider base module"""

from drive_input.mock_input import MockInput, TestScripts

# GamepadInput needs pygame: import it from drive_input.gamepad_input directly
__all__ = ["MockInput", "TestScripts"]
