"""
Validator vote watcher CLI entry point.

Subscribe to a node's new block events and export, as a Prometheus gauge, the
latest block height the configured validator voted on.

Usage::

    python -m vote_watcher
    python -m vote_watcher --config /etc/vote-watcher/config.yaml
    python -m vote_watcher --config config.yaml --listen 0.0.0.0:9300 -v

Options:
    --config      Path to the YAML config file (default: ./config.yaml)
    --listen      Override the metrics listen address (host:port)
    -v            Enable debug logging
    --no-color    Disable colored logging output

Exit status is 1 when the config cannot be loaded or the node subscription
fails. There is no reconnection; run under a supervisor that restarts it.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from vote_watcher.config import DEFAULT_CONFIG_PATH, ConfigError, WatcherConfig
from vote_watcher.node import Watcher
from vote_watcher.subscription import NodeSubscription, SubscriptionError

logger = logging.getLogger(__name__)

EXIT_OK = 0
"""Clean shutdown."""

EXIT_FAILURE = 1
"""Fatal startup or subscription error."""


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)

        timestamp = self.formatTime(record, self.datefmt)
        colored_time = f"{self.CYAN}{timestamp}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{colored_time} {levelname} {name}: {message}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure logging for the watcher with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # aiohttp logs every scrape at INFO.
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


async def run_watcher(config: WatcherConfig) -> int:
    """
    Run the vote watcher.

    Opens the node subscription first: without it the watcher has nothing to
    report, so a failure here ends the process before the metrics server binds.

    Args:
        config: Loaded watcher configuration.

    Returns:
        Process exit status.
    """
    logger.info("Watching validator %s", config.validator_network_address)

    try:
        subscription = await NodeSubscription.open(config.websocket_url, config.query)
    except SubscriptionError as e:
        logger.error("Unable to start subscription: %s", e)
        return EXIT_FAILURE

    watcher = Watcher.create(
        subscription=subscription,
        validator=config.validator_network_address,
        api_config=config.api_config,
    )

    # Task group failures arrive as exception groups.
    status = EXIT_OK
    try:
        await watcher.run()
    except* SubscriptionError as eg:
        for error in eg.exceptions:
            logger.error("Subscription failed: %s", error)
        status = EXIT_FAILURE
    except* OSError as eg:
        for error in eg.exceptions:
            logger.error("Metrics server failed: %s", error)
        status = EXIT_FAILURE

    return status


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Validator vote watcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the YAML config file (default: ./{DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--listen",
        type=str,
        default=None,
        help="Metrics listen address host:port (overrides listenAddress)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.no_color)

    try:
        config = WatcherConfig.from_yaml_file(args.config)
        if args.listen is not None:
            config = config.copy(listen_address=args.listen)
    except (ConfigError, ValueError) as e:
        logger.error("Fatal error loading config: %s", e)
        return EXIT_FAILURE

    try:
        return asyncio.run(run_watcher(config))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
