"""
Pydantic models for the file snapshot watchman.

Shared data models across the application.
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


# =====================================================
# Runtime Configuration Models
# =====================================================

class WatchTarget(BaseModel):
    """Immutable per-run description of what to watch and where to write."""
    model_config = ConfigDict(frozen=True)

    file_path: Path
    output_dir: Path
    quiet_period: float = Field(default=30.0, gt=0)  # seconds
    poll_interval: float = Field(default=5.0, gt=0)  # seconds
    single_instance: bool = True
    compression_level: int = 1

    @property
    def liveness_interval(self) -> float:
        """Seconds between liveness samples."""
        return (self.poll_interval + self.quiet_period) * 2


# =====================================================
# Persistence Models
# =====================================================

class PersistedState(BaseModel):
    """Record of the most recently snapshotted content."""
    last_fingerprint: str
    last_file_path: str
    last_processed_at: datetime
