#!/usr/bin/env python3
"""
omnidrive Environment Configuration Helper

Provides easy access to .env configuration for the launcher and demos.
Automatically loads .env file and provides defaults.
"""

import math
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from omnidrive.types import (
    DrivetrainConfig,
    HeadingGains,
    LoopConfig,
    PositionLoopGains,
    WheelPosition,
)


class OmniConfig:
    """Configuration manager for omnidrive tools"""

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            env_file: Path to .env file (default: .env in current directory)
        """
        self._loaded = False

        path = Path(".env") if env_file is None else Path(env_file)
        if path.exists():
            load_dotenv(path)
            self._loaded = True

    @staticmethod
    def _float(name: str, default: float) -> float:
        return float(os.getenv(name, str(default)))

    @staticmethod
    def _int(name: str, default: int) -> int:
        return int(os.getenv(name, str(default)))

    @property
    def wheel_diameter_in(self) -> float:
        """Wheel diameter in inches (default: 6)"""
        return self._float("OMNI_WHEEL_DIAMETER_IN", 6.0)

    @property
    def wheel_circumference_cm(self) -> float:
        return self.wheel_diameter_in * 2.54 * math.pi

    @property
    def motor_revs_per_wheel_rev(self) -> float:
        """Gear reduction (default: 16)"""
        return self._float("OMNI_GEAR_RATIO", 16.0)

    @property
    def counts_per_motor_rev(self) -> int:
        """Encoder counts per motor revolution (default: 40)"""
        return self._int("OMNI_COUNTS_PER_REV", 40)

    @property
    def tolerance(self) -> int:
        """Position completion window in counts (default: 100)"""
        return self._int("OMNI_TOLERANCE", 100)

    @property
    def arm_cycles(self) -> int:
        """Cycles the heading target keeps following the gyro after a turn (default: 10)"""
        return self._int("OMNI_ARM_CYCLES", 10)

    @property
    def loop_interval(self) -> float:
        """Control period in seconds (default: 0.02)"""
        return self._float("OMNI_LOOP_INTERVAL", 0.02)

    @property
    def input_timeout(self) -> float:
        """Max command age in seconds (default: 0.5)"""
        return self._float("OMNI_INPUT_TIMEOUT", 0.5)

    @property
    def heading_gains(self) -> HeadingGains:
        return HeadingGains(
            kp=self._float("OMNI_HEADING_KP", 0.0),
            ki=self._float("OMNI_HEADING_KI", 0.0),
            kd=self._float("OMNI_HEADING_KD", 0.0),
        )

    @property
    def inverted_wheels(self) -> List[str]:
        """Comma-separated wheel names to invert (default: BACK_LEFT)"""
        raw = os.getenv("OMNI_INVERTED", "BACK_LEFT")
        return [name.strip().upper() for name in raw.split(",") if name.strip()]

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        checks = [
            ("OMNI_WHEEL_DIAMETER_IN", lambda: self.wheel_diameter_in > 0),
            ("OMNI_GEAR_RATIO", lambda: self.motor_revs_per_wheel_rev > 0),
            ("OMNI_COUNTS_PER_REV", lambda: self.counts_per_motor_rev > 0),
            ("OMNI_TOLERANCE", lambda: self.tolerance > 0),
            ("OMNI_ARM_CYCLES", lambda: self.arm_cycles >= 0),
            ("OMNI_LOOP_INTERVAL", lambda: self.loop_interval > 0),
            ("OMNI_INPUT_TIMEOUT", lambda: self.input_timeout > 0),
            ("OMNI_HEADING_KP", lambda: math.isfinite(self._float("OMNI_HEADING_KP", 0.0))),
            ("OMNI_HEADING_KI", lambda: math.isfinite(self._float("OMNI_HEADING_KI", 0.0))),
            ("OMNI_HEADING_KD", lambda: math.isfinite(self._float("OMNI_HEADING_KD", 0.0))),
        ]
        for name, check in checks:
            try:
                if not check():
                    errors.append(f"{name} is out of range ({os.getenv(name)})")
            except ValueError:
                errors.append(f"{name} is not a number ({os.getenv(name)})")

        valid_names = {w.name for w in WheelPosition}
        for name in self.inverted_wheels:
            if name not in valid_names:
                errors.append(f"OMNI_INVERTED has unknown wheel '{name}'")

        return len(errors) == 0, errors

    def drivetrain_config(self) -> DrivetrainConfig:
        """Build the DrivetrainConfig described by the environment"""
        inverted: Dict[WheelPosition, bool] = {
            w: w.name in self.inverted_wheels for w in WheelPosition
        }
        return DrivetrainConfig(
            wheel_circumference_cm=self.wheel_circumference_cm,
            motor_revs_per_wheel_rev=self.motor_revs_per_wheel_rev,
            counts_per_motor_rev=self.counts_per_motor_rev,
            tolerance=self.tolerance,
            arm_cycles=self.arm_cycles,
            period=self.loop_interval,
            inverted=inverted,
            heading_gains=self.heading_gains,
            position_gains=PositionLoopGains(),
        )

    def loop_config(self) -> LoopConfig:
        return LoopConfig(loop_interval=self.loop_interval, input_timeout=self.input_timeout)

    def print_status(self):
        """Print configuration status"""
        gains = self.heading_gains
        print("omnidrive Configuration Status:")
        print(f"  .env loaded:   {'Yes' if self._loaded else 'No'}")
        print(f"  Wheel:         {self.wheel_diameter_in} in ({self.wheel_circumference_cm:.2f} cm circumference)")
        print(f"  Gear ratio:    {self.motor_revs_per_wheel_rev}:1")
        print(f"  Counts/rev:    {self.counts_per_motor_rev}")
        print(f"  Tolerance:     {self.tolerance} counts")
        print(f"  Arm cycles:    {self.arm_cycles}")
        print(f"  Loop interval: {self.loop_interval}s")
        print(f"  Heading PID:   kP={gains.kp} kI={gains.ki} kD={gains.kd}")
        print(f"  Inverted:      {', '.join(self.inverted_wheels) or '(none)'}")

        is_valid, errors = self.validate()
        if is_valid:
            print("\n  Status: Configuration is valid")
        else:
            print("\n  Status: Configuration has errors:")
            for error in errors:
                print(f"    - {error}")


# Global config instance (entry points only, the drivetrain gets its config injected)
_config = None

def get_config(reload: bool = False) -> OmniConfig:
    """
    Get the global configuration instance

    Args:
        reload: Force reload of .env file

    Returns:
        OmniConfig instance
    """
    global _config
    if _config is None or reload:
        _config = OmniConfig()
    return _config


def main():
    """Command-line utility to check configuration"""
    import argparse

    parser = argparse.ArgumentParser(
        description="omnidrive Configuration Utility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Check current configuration:
    python omni_config.py

  Validate configuration:
    python omni_config.py --validate

  Use custom .env file:
    python omni_config.py --env-file /path/to/.env
        """
    )

    parser.add_argument("--env-file", help="Path to .env file")
    parser.add_argument("--validate", action="store_true",
                       help="Validate configuration and exit with error if invalid")

    args = parser.parse_args()

    config = OmniConfig(args.env_file)
    config.print_status()

    if args.validate:
        is_valid, errors = config.validate()
        if not is_valid:
            print("\nValidation failed!")
            import sys
            sys.exit(1)
        else:
            print("\nValidation passed!")


if __name__ == "__main__":
    main()
