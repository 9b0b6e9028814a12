"""
Liveness monitoring for the File Snapshot domain.

The poll loop bumps an :class:`ActivityCounter` once per cycle. The
:class:`LivenessWatchdog` samples it on a coarse interval and asks the
process to exit when it stops moving, so that an external supervisor can
restart the monitor.
"""

import threading
from typing import Optional

from loguru import logger

from app.utils.config import EXIT_OK, EXIT_STALLED

ACTIVITY_COUNTER_MAX = 2**63 - 1

# A drop larger than this between samples is a wrap, not a stall
WRAP_THRESHOLD = 1 << 40


class ActivityCounter:
    """Thread-safe monotonic counter that resets to zero past its maximum."""

    def __init__(self, initial: int = 0, maximum: int = ACTIVITY_COUNTER_MAX) -> None:
        self.maximum = maximum
        self._value = initial
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> int:
        """Increment and return the new value."""
        with self._lock:
            if self._value >= self.maximum:
                self._value = 0
            else:
                self._value += 1
            return self._value


class LivenessWatchdog:
    """Detect a stalled change detector."""

    def __init__(self, counter: ActivityCounter, interval: float) -> None:
        """
        Initialize watchdog.

        Args:
            counter: Activity counter driven by the poll loop
            interval: Seconds between samples

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.counter = counter
        self.interval = interval
        self._last_sample: Optional[int] = None

    def check(self) -> bool:
        """
        Sample the counter and compare it with the previous sample.

        Returns:
            True if the detector is making progress (or the counter wrapped),
            False if it stalled
        """
        current = self.counter.value
        previous = self._last_sample
        self._last_sample = current

        if previous is None or current > previous:
            return True

        if previous - current > WRAP_THRESHOLD:
            logger.warning(f"Activity counter overflow detected ({previous} -> {current})")
            return True

        logger.critical(f"Monitor stopped: no polling activity since sample {previous}")
        return False

    def run(self, stop_event: threading.Event) -> int:
        """
        Sample until stopped or stalled.

        Args:
            stop_event: Set to request a normal shutdown

        Returns:
            EXIT_OK when stopped, EXIT_STALLED when the detector stalled
        """
        self._last_sample = self.counter.value

        while not stop_event.wait(self.interval):
            if not self.check():
                return EXIT_STALLED

        return EXIT_OK
