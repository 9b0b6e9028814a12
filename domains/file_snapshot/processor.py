"""
Content processor for the File Snapshot domain.

Turns a stable file into at most one compressed snapshot and an updated
state record. Only genuine content changes (by SHA-256 fingerprint) produce
output.
"""

import hashlib
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

import zstandard as zstd
from loguru import logger

from app.models.schemas import PersistedState, WatchTarget
from app.utils.helpers import format_bytes, snapshot_name
from domains.file_snapshot.state_store import StateStore

CHUNK_SIZE = 1024 * 1024


def compute_fingerprint(stream: BinaryIO) -> str:
    """
    Compute the SHA-256 hex digest of a binary stream.

    Args:
        stream: Stream positioned at the start of the content

    Returns:
        Lowercase hex digest
    """
    digest = hashlib.sha256()
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.hexdigest()


class SnapshotProcessor:
    """Fingerprint, compress and record the watched file."""

    def __init__(
        self,
        target: WatchTarget,
        store: StateStore,
        state: Optional[PersistedState] = None,
    ):
        """
        Initialize processor.

        Args:
            target: Watch target configuration
            store: State store used to persist successful runs
            state: State loaded at startup, if any
        """
        self.target = target
        self.store = store
        self._state = state
        self._lock = threading.Lock()

    @property
    def state(self) -> Optional[PersistedState]:
        """Most recently persisted state."""
        return self._state

    def process(self) -> Optional[Path]:
        """
        Snapshot the watched file if its content changed.

        Only one run executes at a time; concurrent callers wait for the
        current run and then re-evaluate. Failures are logged and leave the
        state untouched.

        Returns:
            Path of the written snapshot, or None if nothing was written
        """
        with self._lock:
            try:
                return self._process()
            except Exception:
                logger.exception(f"Processing error for {self.target.file_path}")
                return None

    def _process(self) -> Optional[Path]:
        file_path = self.target.file_path

        try:
            source = open(file_path, "rb")
        except FileNotFoundError:
            return None

        with source:
            # Size and mtime come from the open handle, not the path
            stats = os.fstat(source.fileno())

            # Empty file is usually a write in progress
            if stats.st_size == 0:
                return None

            fingerprint = compute_fingerprint(source)
            if self._state is not None and fingerprint == self._state.last_fingerprint:
                logger.debug(f"Content unchanged: {file_path}#{fingerprint[:8]}")
                return None

            output_path = self.target.output_dir / snapshot_name(file_path, stats.st_mtime)
            source.seek(0)
            written = self._compress(source, output_path)

        self._state = PersistedState(
            last_fingerprint=fingerprint,
            last_file_path=str(file_path),
            last_processed_at=datetime.now(timezone.utc),
        )
        self.store.save(self._state)

        logger.success(
            f"File processed: {file_path}#{fingerprint[:8]} -> {output_path} "
            f"({format_bytes(written)})"
        )
        return output_path

    def _compress(self, source: BinaryIO, output_path: Path) -> int:
        """Stream ``source`` into a new zstd file; never overwrites an existing one."""

        compressor = zstd.ZstdCompressor(level=self.target.compression_level)

        # "xb" raises FileExistsError on a name collision
        with open(output_path, "xb") as destination:
            try:
                _, written = compressor.copy_stream(source, destination)
            except BaseException:
                destination.close()
                output_path.unlink(missing_ok=True)
                raise

        return written
