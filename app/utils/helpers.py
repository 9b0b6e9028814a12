"""
Helper utilities for the file snapshot watchman.

Common functions used across domains.
"""

from datetime import datetime
from pathlib import Path


SNAPSHOT_EXTENSION = "zst"


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""

    try:
        return path.expanduser().resolve()
    except (FileNotFoundError, RuntimeError):
        return path.expanduser().absolute()


def snapshot_timestamp(mtime: float) -> str:
    """Format a modification time (epoch seconds) as ``YYYY_MM_DD_HHMMSS`` local time."""
    return datetime.fromtimestamp(mtime).strftime("%Y_%m_%d_%H%M%S")


def snapshot_name(source: Path, mtime: float) -> str:
    """
    Build the deterministic snapshot file name for ``source``.

    Args:
        source: Watched file path
        mtime: Observed modification time of the snapshotted content

    Returns:
        File name such as ``data.lua_2024_01_31_235959.zst``
    """
    return f"{source.name}_{snapshot_timestamp(mtime)}.{SNAPSHOT_EXTENSION}"


def format_bytes(bytes_count: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"
