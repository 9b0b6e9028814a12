#!/usr/bin/env python3
"""Keep compressed snapshots of a single file as it changes.

This module exposes the CLI entrypoint for the snapshot watchman. Options not
given on the command line fall back to ``WATCHMAN_*`` environment variables,
then to the path recorded in the state file from a previous run.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from app.main import configure_logging, run
from app.utils.config import EXIT_CONFIG_ERROR, load_settings


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Watch a file and write a compressed snapshot whenever its content settles.",
    )
    parser.add_argument(
        "watch_path",
        nargs="?",
        type=Path,
        default=None,
        help="File to watch (default: $WATCHMAN_WATCH_PATH or the last watched file).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for snapshots (default: current directory).",
    )
    parser.add_argument(
        "--quiet-period",
        type=float,
        default=None,
        help="Seconds without changes before a snapshot is taken (default: 30).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between polling checks (default: 5).",
    )
    parser.add_argument(
        "--no-single-instance",
        dest="single_instance",
        action="store_false",
        default=None,
        help="Allow several monitors on the same file and output directory.",
    )
    parser.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="Where to keep the last processed fingerprint (default: ./appstate.json).",
    )
    parser.add_argument(
        "--lock-dir",
        type=Path,
        default=None,
        help="Directory for single-instance lock files (default: system temp dir).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: INFO).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Snapshot the current content if it changed, then exit.",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    overrides = vars(args).copy()
    once = overrides.pop("once")

    try:
        settings = load_settings(**overrides)
    except ValidationError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR

    configure_logging(settings.log_level)

    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    return run(settings, stop_event=stop_event, once=once)


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
