"""
Snapshot monitor orchestrator.

Data flow: FileChangeDetector → DebounceScheduler → SnapshotProcessor →
StateStore. The LivenessWatchdog observes the detector's activity counter
on the calling thread.
"""

import threading
from typing import Callable, Optional

from loguru import logger
from watchdog.observers import Observer

from app.models.schemas import PersistedState, WatchTarget
from app.utils.config import EXIT_OK, EXIT_STALLED
from domains.file_snapshot.debounce import DebounceScheduler
from domains.file_snapshot.liveness import ActivityCounter, LivenessWatchdog
from domains.file_snapshot.processor import SnapshotProcessor
from domains.file_snapshot.state_store import StateStore
from domains.file_snapshot.watchers.filesystem import FileChangeDetector


class SnapshotMonitor:
    """File snapshot monitoring orchestrator."""

    def __init__(
        self,
        target: WatchTarget,
        store: StateStore,
        state: Optional[PersistedState] = None,
        observer_factory: Optional[Callable[[], object]] = Observer,
    ):
        """
        Initialize snapshot monitor.

        Args:
            target: Watch target configuration
            store: State store for the processor
            state: State loaded at startup, if any
            observer_factory: Builds the watchdog observer; None means polling only
        """
        self.target = target
        self.counter = ActivityCounter()
        self.processor = SnapshotProcessor(target, store, state)
        self.scheduler = DebounceScheduler(target.quiet_period, self.processor.process)
        self.detector = FileChangeDetector(
            target,
            on_change=self.scheduler.signal,
            counter=self.counter,
            observer_factory=observer_factory,
        )
        self.watchdog = LivenessWatchdog(self.counter, target.liveness_interval)

    def start(self):
        """Start the debounce worker and both detection sources."""
        logger.info(
            f"Snapshots of {self.target.file_path.name} -> {self.target.output_dir} "
            f"(quiet period {self.target.quiet_period:g}s)"
        )
        self.scheduler.start()
        self.detector.start()

    def stop(self, timeout: Optional[float] = None):
        """
        Stop detection, then the debounce worker.

        Args:
            timeout: Maximum seconds to wait for each worker; None waits for
                an in-flight processing run to finish
        """
        self.detector.stop(timeout)
        self.scheduler.stop(timeout)
        logger.info("Snapshot monitor stopped")

    def run(self, stop_event: threading.Event) -> int:
        """
        Run until stopped or until the liveness watchdog reports a stall.

        Args:
            stop_event: Set to request shutdown

        Returns:
            Process exit code
        """
        self.start()
        exit_code = EXIT_STALLED
        try:
            exit_code = self.watchdog.run(stop_event)
            return exit_code
        finally:
            # Stalled workers may never finish; daemon threads die with the process
            self.stop(timeout=None if exit_code == EXIT_OK else 0)
