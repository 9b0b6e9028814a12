"""Cross-process single-instance lock keyed by watch path and output directory."""

from __future__ import annotations

import base64
import fcntl
import hashlib
import os
import tempfile
import time
from pathlib import Path
from typing import Optional, TextIO

from loguru import logger

from app.utils.helpers import normalise_path


class InstanceAlreadyRunningError(RuntimeError):
    """Raised when another process already holds the instance lock."""


def instance_name(file_path: Path, output_dir: Path) -> str:
    """
    Derive a stable lock name for a (watch path, output directory) pair.

    Args:
        file_path: Watched file
        output_dir: Snapshot output directory

    Returns:
        Name such as ``watchman_Zk3x...``
    """
    combined = f"{normalise_path(file_path)}|{normalise_path(output_dir)}"
    digest = hashlib.sha256(combined.encode("utf-8")).digest()
    token = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    return f"watchman_{token[:16]}"


class SingleInstanceGuard:
    """Exclusive ``flock`` on a named lock file."""

    def __init__(
        self,
        name: str,
        lock_dir: Optional[Path] = None,
        timeout: float = 5.0,
        retry_interval: float = 0.1,
    ) -> None:
        self.name = name
        self.lock_path = Path(lock_dir or tempfile.gettempdir()) / f"{name}.lock"
        self.timeout = timeout
        self.retry_interval = retry_interval
        self._handle: Optional[TextIO] = None

    @property
    def acquired(self) -> bool:
        return self._handle is not None

    def acquire(self) -> bool:
        """
        Try to take the lock, waiting up to ``timeout`` seconds.

        Returns:
            True if acquired, False if another process holds it

        Raises:
            OSError: If the lock file cannot be created or opened
        """
        if self._handle is not None:
            return True

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.lock_path.open("a+")
        deadline = time.monotonic() + self.timeout

        while True:
            try:
                fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except (BlockingIOError, PermissionError):
                if time.monotonic() >= deadline:
                    handle.close()
                    return False
                time.sleep(self.retry_interval)

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()

        self._handle = handle
        logger.debug(f"Acquired instance lock {self.lock_path}")
        return True

    def release(self) -> None:
        """Release the lock; safe to call more than once."""
        handle, self._handle = self._handle, None
        if handle is None:
            return

        try:
            fcntl.flock(handle, fcntl.LOCK_UN)
        finally:
            handle.close()
        logger.debug(f"Released instance lock {self.lock_path}")

    def __enter__(self) -> SingleInstanceGuard:
        if not self.acquire():
            raise InstanceAlreadyRunningError(
                f"Another instance holds {self.lock_path}"
            )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
