"""
File Snapshot Domain

Watches a single file and keeps compressed snapshots of its stable states:
- Change detection → watchdog events with a polling fallback
- Quiet period → bursts of changes collapse into one processing run
- Processing → SHA-256 fingerprint, zstd snapshot, persisted state
- Self-healing → liveness watchdog and single-instance guard
"""

__all__ = [
    "debounce",
    "instance_guard",
    "liveness",
    "monitor",
    "processor",
    "state_store",
    "watchers",
]
