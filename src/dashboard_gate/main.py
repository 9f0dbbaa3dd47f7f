"""
Main entry point for the dashboard gate.

This module provides the main function and CLI interface. It handles
configuration loading, logging setup, graceful shutdown, and a one-shot
mode that pushes today's password to the webhook and exits.
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

from dashboard_gate import __version__
from dashboard_gate.config import AppConfig, load_config
from dashboard_gate.notifier.webhook import PasswordNotifier
from dashboard_gate.server.app import DashboardServer
from dashboard_gate.utils.exceptions import ConfigurationError
from dashboard_gate.utils.logging import get_logger, setup_logging


async def run_server(config: AppConfig) -> None:
    """
    Run the dashboard server until SIGINT/SIGTERM.

    Args:
        config: Application configuration
    """
    logger = get_logger(__name__)
    server = DashboardServer(config)
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, shutdown_event.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            signal.signal(signum, lambda s, f: shutdown_event.set())

    try:
        await server.start()
        await shutdown_event.wait()
        logger.info("Received shutdown signal")
    finally:
        try:
            await asyncio.wait_for(server.stop(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Server shutdown timed out after 5 seconds, forcing close")


async def notify_once(config: AppConfig) -> bool:
    """Send today's password to the webhook once."""
    async with PasswordNotifier(config.notifier, config.gate) as notifier:
        return await notifier.fire()


def build_config() -> AppConfig:
    """
    Load configuration, wrapping validation errors.

    Raises:
        ConfigurationError: If any setting is invalid
    """
    try:
        return load_config()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration",
            context={"errors": e.error_count()},
            original_error=e,
        )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dashboard-gate",
        description="Serve the dashboard behind an IP allow-list and a daily rotating password",
    )
    parser.add_argument(
        "--notify-once",
        action="store_true",
        help="Send today's password to the webhook and exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the dashboard gate.

    Example:
        Command line usage:
        ```bash
        dashboard-gate
        dashboard-gate --notify-once
        ```
    """
    args = parse_args(argv)

    try:
        config = build_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging)
    logger = get_logger(__name__)
    logger.info("Dashboard gate starting up", version=__version__,
                mode=config.gate.password_mode.value, tz=config.gate.tz)

    try:
        if args.notify_once:
            sys.exit(0 if asyncio.run(notify_once(config)) else 1)
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        print("\nShutdown requested", file=sys.stderr)
    finally:
        logger.info("Dashboard gate shutdown complete")


if __name__ == "__main__":
    main()
