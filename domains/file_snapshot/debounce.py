"""
Quiet-period scheduling for the File Snapshot domain.

Collapses bursts of change signals into a single delayed callback. Every
signal pushes the deadline ``quiet_period`` seconds into the future; the
callback runs once the deadline passes without another signal.

Example:
--------
    data.lua modified at t=0s
    data.lua modified at t=1s    } one run at t=1s + quiet_period
    data.lua modified at t=2s    }
"""

import threading
import time
from typing import Callable, Optional

from loguru import logger


class DebounceScheduler:
    """Single resettable timer backed by one worker thread."""

    def __init__(self, quiet_period: float, callback: Callable[[], object]) -> None:
        """
        Initialize scheduler (not started yet).

        Args:
            quiet_period: Seconds of silence required before the callback runs
            callback: Function invoked once per quiet period

        Raises:
            ValueError: If quiet_period is not positive
        """
        if quiet_period <= 0:
            raise ValueError("quiet_period must be positive")

        self.quiet_period = quiet_period
        self.callback = callback
        self._condition = threading.Condition()
        self._deadline: Optional[float] = None
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    @property
    def pending(self) -> bool:
        """True while a firing is scheduled."""
        with self._condition:
            return self._deadline is not None

    def start(self) -> None:
        """Start the worker thread."""
        with self._condition:
            if self._thread is not None:
                raise RuntimeError("DebounceScheduler is already running")
            self._stopped = False
            self._thread = threading.Thread(
                target=self._run, name="snapshot-debounce", daemon=True
            )
            self._thread.start()

    def signal(self) -> None:
        """(Re)schedule the callback ``quiet_period`` seconds from now."""
        with self._condition:
            if self._stopped:
                return
            self._deadline = time.monotonic() + self.quiet_period
            self._condition.notify()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel any pending firing and wait for the worker to exit."""
        with self._condition:
            self._stopped = True
            self._deadline = None
            self._condition.notify_all()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

        with self._condition:
            self._thread = None

    def _run(self) -> None:
        with self._condition:
            while not self._stopped:
                if self._deadline is None:
                    self._condition.wait()
                    continue

                remaining = self._deadline - time.monotonic()
                if remaining > 0:
                    self._condition.wait(remaining)
                    continue

                self._deadline = None

                # Signals arriving while the callback runs set a new deadline
                self._condition.release()
                try:
                    self.callback()
                except Exception:
                    logger.exception("Error in debounce callback")
                finally:
                    self._condition.acquire()
