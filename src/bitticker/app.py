from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import ConfigStore
from .di import build_container
from .logging import configure_logging
from .runtime import run

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point supporting both CLI commands and background poller mode.

    - `bitticker` or `bitticker run`: run the poller in the background
    - `bitticker <typer-subcommand>`: run CLI mode (e.g. `bitticker quote BTC`)
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        return _run_daemon_mode([])

    if argv[0] == "run":
        return _run_daemon_mode(argv[1:])

    return _run_cli_mode(argv)


def _run_daemon_mode(argv: list[str]) -> int:
    """Run the poller until interrupted, reloading when the config file changes."""
    parser = argparse.ArgumentParser(
        prog="bitticker run", description="Poll the configured exchange in the background"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (default: BITTICKER_CONFIG or ./config.yml)",
    )

    args = parser.parse_args(argv)
    configure_logging(Path("logs"))

    container = build_container(ConfigStore(args.config))

    logger.info("bitticker poller booting")
    try:
        asyncio.run(run(container))
    except KeyboardInterrupt:
        logger.info("interrupted")
    logger.info("bitticker poller exit")

    return 0


def _run_cli_mode(argv: list[str]) -> int:
    """Run in CLI mode using Typer."""
    try:
        configure_logging(Path("logs"))

        from .cli import run_cli
        run_cli(argv)
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except Exception as e:
        logger.error("CLI error: %s", e, exc_info=True)
        return 1
