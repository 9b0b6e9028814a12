"""Durable storage for the last processed fingerprint."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from app.models.schemas import PersistedState


class StateStore:
    """JSON serialization boundary for :class:`PersistedState`."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Optional[PersistedState]:
        """
        Load the persisted state.

        Returns:
            PersistedState, or None if the file is absent or unreadable
        """
        if not self.path.exists():
            return None

        try:
            return PersistedState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None

    def save(self, state: PersistedState) -> None:
        """Replace the stored state with ``state``."""

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
