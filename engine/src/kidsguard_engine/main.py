"""Command-line entry point for the KidsGuard engine.

Runs the engine against the simulated platform bridges, which is how the
policy is exercised on a development machine.
"""

import argparse
import asyncio
import logging
import math
import sys
from pathlib import Path

from kidsguard_shared import SettingKind

from .app import Bridges, KidsGuardApp
from .config import Config, load_config
from .credentials import is_valid_pin
from .errors import IncorrectCurrentPin, LockedOut, OverlayPermissionRequired
from .formatting import format_minutes, format_seconds
from .simulated import SimulatedAdDelivery, SimulatedLevel, SimulatedScreenTime, SimulatedService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"{text} is not a finite number")
    return value


def simulated_bridges() -> Bridges:
    return Bridges(
        volume=SimulatedLevel("Volume"),
        brightness=SimulatedLevel("Brightness"),
        screen_time=SimulatedScreenTime(),
        service=SimulatedService(),
        ads=SimulatedAdDelivery(),
    )


async def _verify_parent(app: KidsGuardApp, pin: str) -> bool:
    try:
        if await app.credentials.verify(pin):
            return True
    except LockedOut as e:
        print(e)
        return False
    print("Incorrect PIN")
    return False


async def cmd_setup_pin(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Set the parent PIN on first launch."""
    if not is_valid_pin(args.pin):
        print("PIN must be exactly 4 digits")
        return 2
    if not await app.credentials.is_first_launch():
        print("A PIN is already set, use change-pin instead")
        return 1
    await app.complete_setup(args.pin)
    print("PIN saved")
    return 0


async def cmd_verify(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Check a PIN."""
    if not await _verify_parent(app, args.pin):
        return 1
    print("PIN accepted")
    return 0


async def cmd_change_pin(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Replace the parent PIN."""
    if not is_valid_pin(args.new_pin):
        print("PIN must be exactly 4 digits")
        return 2
    try:
        await app.credentials.change_pin(args.old_pin, args.new_pin)
    except (LockedOut, IncorrectCurrentPin) as e:
        print(e)
        return 1
    print("PIN changed")
    return 0


async def cmd_status(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Show settings, screen time and service state."""
    if await app.start():
        print("No PIN set up yet, run setup-pin first")
        return 1

    settings = await app.enforcement.get_all_settings()
    for kind, setting in settings.items():
        if kind is SettingKind.SCREEN_TIME:
            value = format_minutes(setting.value)
        else:
            value = f"{setting.value}%"
        if setting.is_default:
            state = "not configured"
        else:
            state = "locked" if setting.locked else "unlocked"
        print(f"{kind:<12} {value:>8}  {state}")

    if settings[SettingKind.SCREEN_TIME].locked:
        usage = await app.enforcement.get_screen_time_usage()
        print(f"Screen time left: {format_seconds(usage.remaining_seconds)}")

    running = await app.enforcement.is_service_running()
    print(f"Enforcement service: {'running' if running else 'stopped'}")
    if app.enforcement.service_start_failed:
        print("Service failed to start, use retry-service to try again")

    remaining = await app.credentials.lockout_remaining_seconds()
    if remaining is not None:
        print(f"PIN entry locked for {remaining} more seconds")
    return 0


async def cmd_lock(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Lock a setting at a value (screen time in minutes)."""
    if not await _verify_parent(app, args.pin):
        return 1
    await app.start()

    kind = SettingKind(args.kind)
    try:
        success = await app.enforcement.lock(kind, args.value)
    except OverlayPermissionRequired as e:
        print(e)
        return 1

    if not success:
        print(f"Failed to lock {kind}")
        return 1
    print(f"{kind} locked at {app.enforcement.get_enforced_value(kind)}")
    return 0


async def cmd_unlock(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Unlock a setting."""
    if not await _verify_parent(app, args.pin):
        return 1
    await app.start()

    kind = SettingKind(args.kind)
    if not await app.enforcement.unlock(kind):
        print(f"Failed to unlock {kind}")
        return 1
    print(f"{kind} unlocked")
    return 0


async def cmd_retry_service(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Start the enforcement service again after a failure."""
    if not await _verify_parent(app, args.pin):
        return 1
    await app.start()

    if not await app.enforcement.force_start_service():
        print("Enforcement service failed to start")
        return 1
    print("Enforcement service started")
    return 0


async def cmd_ad_check(app: KidsGuardApp, args: argparse.Namespace) -> int:
    """Simulate an app-foreground event and show an ad if one is due."""
    shown = await app.on_app_foreground()
    print("Ad shown" if shown else "No ad due")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="KidsGuard parental control engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kidsguard setup-pin 1234               Set the parent PIN
  kidsguard status                       Show settings and enforcement state
  kidsguard lock volume 70 --pin 1234    Hold volume at 70%
  kidsguard lock screen_time 90 --pin 1234
  kidsguard unlock volume --pin 1234     Release volume
""",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    kinds = [kind.value for kind in SettingKind]

    setup_parser = subparsers.add_parser("setup-pin", help="Set the parent PIN")
    setup_parser.add_argument("pin")
    setup_parser.set_defaults(handler=cmd_setup_pin)

    verify_parser = subparsers.add_parser("verify", help="Check a PIN")
    verify_parser.add_argument("pin")
    verify_parser.set_defaults(handler=cmd_verify)

    change_parser = subparsers.add_parser("change-pin", help="Change the parent PIN")
    change_parser.add_argument("old_pin")
    change_parser.add_argument("new_pin")
    change_parser.set_defaults(handler=cmd_change_pin)

    status_parser = subparsers.add_parser("status", help="Show current state")
    status_parser.set_defaults(handler=cmd_status)

    lock_parser = subparsers.add_parser("lock", help="Lock a setting")
    lock_parser.add_argument("kind", choices=kinds)
    lock_parser.add_argument("value", type=finite_float)
    lock_parser.add_argument("--pin", required=True)
    lock_parser.set_defaults(handler=cmd_lock)

    unlock_parser = subparsers.add_parser("unlock", help="Unlock a setting")
    unlock_parser.add_argument("kind", choices=kinds)
    unlock_parser.add_argument("--pin", required=True)
    unlock_parser.set_defaults(handler=cmd_unlock)

    retry_parser = subparsers.add_parser(
        "retry-service",
        help="Start the enforcement service after a failure",
    )
    retry_parser.add_argument("--pin", required=True)
    retry_parser.set_defaults(handler=cmd_retry_service)

    ad_parser = subparsers.add_parser("ad-check", help="Show an ad if one is due")
    ad_parser.set_defaults(handler=cmd_ad_check)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.config is not None:
        if not args.config.exists():
            setup_logging(args.verbose)
            logger.error("Configuration file not found: %s", args.config)
            sys.exit(1)
        config = load_config(args.config)
    else:
        config = Config()

    setup_logging(args.verbose, config.log_file)
    logger.debug("Using data directory %s", config.data_dir)

    app = KidsGuardApp.from_config(config, simulated_bridges())
    sys.exit(asyncio.run(args.handler(app, args)))


if __name__ == "__main__":
    main()
