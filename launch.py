#!/usr/bin/env python3
"""
omnidrive Launcher - Easy start for drive testing

Usage:
    python launch.py --demo                   # Run core demo (mock robot)
    python launch.py --gamepad --mock         # Drive the mock robot with a gamepad
    python launch.py --script strafe --mock   # Replay a scripted test on the mock robot
    python launch.py --check-config           # Show .env configuration
"""

import sys
import argparse
import asyncio
import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure logging"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )


def launch_loop(input_provider, env_file=None) -> None:
    """Run the drive loop against the mock robot until Ctrl+C"""
    from omni_config import OmniConfig, get_config
    from demo_core import build_mock_stack

    config = get_config() if env_file is None else OmniConfig(env_file)
    is_valid, errors = config.validate()
    if not is_valid:
        for error in errors:
            print(f"ERROR: {error}")
        sys.exit(1)

    _, _, loop = build_mock_stack(
        input_provider,
        config.drivetrain_config(),
        config.loop_config(),
    )

    try:
        asyncio.run(loop.run())
    except KeyboardInterrupt:
        print("\nShutting down...")


def launch_gamepad(use_mock: bool, env_file=None) -> None:
    """Launch gamepad control"""
    print("Starting gamepad control mode...")
    print("Left stick translates, right stick rotates, LB for precision")

    if not use_mock:
        # Real motor controllers are wired by the robot bring-up code
        print("ERROR: only the mock robot is available from the launcher")
        print("Use --mock flag for testing")
        sys.exit(1)

    try:
        from drive_input.gamepad_input import GamepadInput
    except ImportError:
        print("\nERROR: pygame not installed")
        print("Install with: pip install pygame")
        sys.exit(1)

    launch_loop(GamepadInput(deadzone=0.1), env_file)


def launch_script(name: str, use_mock: bool, env_file=None) -> None:
    """Replay a scripted test on the mock robot"""
    from drive_input import MockInput

    if not use_mock:
        print("ERROR: scripts run on the mock robot only, add --mock")
        sys.exit(1)

    provider = MockInput()
    provider.load_script(name)
    launch_loop(provider, env_file)


def launch_demo() -> None:
    """Launch core demo"""
    print("Starting core demo...")
    from demo_core import run_demo
    asyncio.run(run_demo())


def check_config(env_file=None) -> None:
    from omni_config import OmniConfig, get_config
    config = get_config() if env_file is None else OmniConfig(env_file)
    config.print_status()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="omnidrive - Holonomic Drive Control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python launch.py --demo                   Run core demo
  python launch.py --gamepad --mock         Test gamepad with mock robot
  python launch.py --script diagonal --mock Replay the diagonal test
        """
    )

    parser.add_argument(
        "--gamepad",
        action="store_true",
        help="Use gamepad control (requires pygame)"
    )
    parser.add_argument(
        "--script",
        choices=["forward", "strafe", "spin_then_hold", "diagonal"],
        help="Replay a scripted drive test"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the mock robot (no hardware needed)"
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run core demo"
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Print .env configuration status"
    )
    parser.add_argument("--env-file", help="Path to .env file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level"
    )

    args = parser.parse_args()

    setup_logging(args.log_level)

    if args.check_config:
        check_config(args.env_file)
    elif args.demo:
        launch_demo()
    elif args.gamepad:
        launch_gamepad(args.mock, args.env_file)
    elif args.script:
        launch_script(args.script, args.mock, args.env_file)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
