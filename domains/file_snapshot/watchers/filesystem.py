"""
Change detector for the File Snapshot domain.

Watches a single file through two independent sources that share one
``on_change`` callback:
- watchdog events on the file's parent directory (non-recursive)
- a polling loop comparing modification time and size

The polling loop also drives the liveness counter, so detection keeps working
and stays observable even when the event source is unavailable.
"""

import os
import threading
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.models.schemas import WatchTarget
from domains.file_snapshot.liveness import ActivityCounter


class TargetFileEventHandler(FileSystemEventHandler):
    """Forward events that touch the watched file."""

    def __init__(self, target_file: Path, on_change: Callable[[], None]):
        """
        Initialize event handler.

        Args:
            target_file: Absolute path of the watched file
            on_change: Callback invoked for every relevant event
        """
        super().__init__()
        self.target_file = os.fsdecode(target_file)
        self.on_change = on_change

    def is_target(self, path) -> bool:
        """Check if an event path refers to the watched file."""
        return bool(path) and os.fsdecode(path) == self.target_file

    def on_modified(self, event: FileSystemEvent):
        """Handle file modification."""
        if event.is_directory or not self.is_target(event.src_path):
            return

        logger.debug(f"Modified: {event.src_path}")
        self.on_change()

    def on_created(self, event: FileSystemEvent):
        """Handle file (re)creation."""
        if event.is_directory or not self.is_target(event.src_path):
            return

        logger.debug(f"Created: {event.src_path}")
        self.on_change()

    def on_moved(self, event: FileSystemEvent):
        """Handle atomic replace (temp file renamed onto the watched file)."""
        dest = getattr(event, "dest_path", None)
        if event.is_directory or not self.is_target(dest):
            return

        logger.debug(f"Moved: {event.src_path} -> {dest}")
        self.on_change()


class FileChangeDetector:
    """Dual-source change detection for one file."""

    def __init__(
        self,
        target: WatchTarget,
        on_change: Callable[[], None],
        counter: Optional[ActivityCounter] = None,
        observer_factory: Optional[Callable[[], object]] = Observer,
    ):
        """
        Initialize change detector (not started yet).

        Args:
            target: Watch target configuration
            on_change: Callback invoked whenever the file may have changed
            counter: Activity counter bumped once per poll cycle
            observer_factory: Builds the watchdog observer; None disables events
        """
        self.target = target
        self.on_change = on_change
        self.counter = counter or ActivityCounter()
        self.observer_factory = observer_factory

        self.observer = None
        self._last_mtime_ns: Optional[int] = None
        self._last_size = -1
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

    @property
    def events_enabled(self) -> bool:
        """True when the watchdog event source is running."""
        return self.observer is not None

    def start(self):
        """Start polling and, when possible, event watching."""
        if self._poll_thread is not None:
            raise RuntimeError("FileChangeDetector is already running")

        self._stop_event.clear()
        self._poll_thread = threading.Thread(
            target=self._poll_loop, name="snapshot-poll", daemon=True
        )
        self._poll_thread.start()

        self.observer = self._start_observer()

        mode = "events + polling" if self.events_enabled else "polling only"
        logger.info(
            f"Monitoring of {self.target.file_path} every "
            f"{self.target.poll_interval:g}s started ({mode})"
        )

    def stop(self, timeout: Optional[float] = None):
        """
        Stop both sources.

        Args:
            timeout: Maximum seconds to wait for each worker thread; None waits
        """
        self._stop_event.set()

        if self.observer is not None:
            try:
                self.observer.stop()
                self.observer.join(timeout)
            except Exception as e:
                logger.warning(f"Failed to stop file system observer: {e}")
            self.observer = None

        if self._poll_thread is not None:
            self._poll_thread.join(timeout)
            if self._poll_thread.is_alive():
                logger.warning("Poll thread did not stop in time")
            self._poll_thread = None

    def _start_observer(self):
        if self.observer_factory is None:
            return None

        handler = TargetFileEventHandler(self.target.file_path, self.on_change)
        watch_dir = self.target.file_path.parent

        try:
            observer = self.observer_factory()
            observer.schedule(handler, str(watch_dir), recursive=False)
            observer.daemon = True
            observer.start()

        except Exception as e:
            logger.warning(f"Filesystem watcher initialization failed, polling only: {e}")
            return None

        logger.success(f"Started watching: {watch_dir}")
        return observer

    def _poll_loop(self):
        while not self._stop_event.wait(self.target.poll_interval):
            self.poll_once()

    def poll_once(self) -> bool:
        """
        Run one poll cycle.

        Returns:
            True if a change was signalled
        """
        changed = False
        try:
            stats = os.stat(self.target.file_path)
            if stats.st_mtime_ns != self._last_mtime_ns or stats.st_size != self._last_size:
                self._last_mtime_ns = stats.st_mtime_ns
                self._last_size = stats.st_size
                changed = True
                self.on_change()

        except FileNotFoundError:
            logger.debug(f"Polling check: {self.target.file_path} not found")
        except Exception as e:
            logger.warning(f"Polling check failed: {e}")
        finally:
            self.counter.increment()

        return changed
