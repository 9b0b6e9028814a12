"""
File Snapshot Watchman - process root

Resolves the watch target, takes the single-instance lock and runs the
snapshot monitor until it is stopped or the liveness watchdog fires.
"""

import sys
import threading
from typing import Optional

from loguru import logger

from app.utils.config import (
    EXIT_ALREADY_RUNNING,
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    ConfigurationError,
    Settings,
    resolve_watch_target,
)
from app.utils.helpers import normalise_path
from domains.file_snapshot.instance_guard import SingleInstanceGuard, instance_name
from domains.file_snapshot.monitor import SnapshotMonitor
from domains.file_snapshot.processor import SnapshotProcessor
from domains.file_snapshot.state_store import StateStore


def configure_logging(level: str = "INFO"):
    """Replace loguru's default sink with the application format."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level.upper()
    )


def run(
    settings: Settings,
    stop_event: Optional[threading.Event] = None,
    once: bool = False,
) -> int:
    """
    Run the snapshot watchman.

    Args:
        settings: Resolved settings
        stop_event: Set to request shutdown (created if not given)
        once: Process the current file content once and return

    Returns:
        Process exit code
    """
    store = StateStore(normalise_path(settings.state_file))
    state = store.load()

    try:
        target = resolve_watch_target(settings, state)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    guard = None
    if target.single_instance:
        guard = SingleInstanceGuard(
            instance_name(target.file_path, target.output_dir),
            lock_dir=settings.lock_dir,
            timeout=settings.instance_wait,
        )
        try:
            acquired = guard.acquire()
        except OSError as e:
            logger.error(f"Cannot open instance lock {guard.lock_path}: {e}")
            return EXIT_CONFIG_ERROR

        if not acquired:
            logger.info("Another instance is already monitoring this file and output directory")
            return EXIT_ALREADY_RUNNING

    try:
        if once:
            SnapshotProcessor(target, store, state).process()
            return EXIT_OK

        monitor = SnapshotMonitor(target, store, state)
        return monitor.run(stop_event or threading.Event())
    finally:
        if guard is not None:
            guard.release()
