"""
Process-level test for the single-instance guard.

Holds the lock for a (file, output dir) pair in this process, then launches
the real CLI against the same pair and checks it exits straight away with
the reserved conflict code.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

from app.utils.config import EXIT_ALREADY_RUNNING
from domains.file_snapshot.instance_guard import SingleInstanceGuard, instance_name

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def test_second_process_exits_with_conflict_code(tmp_path):
    watched = tmp_path / "data.lua"
    watched.write_text("payload")
    output_dir = tmp_path / "out"
    lock_dir = tmp_path / "locks"

    env = os.environ.copy()
    env["PYTHONPATH"] = str(PROJECT_ROOT) + os.pathsep + env.get("PYTHONPATH", "")
    env["WATCHMAN_INSTANCE_WAIT"] = "0.2"

    with SingleInstanceGuard(instance_name(watched, output_dir), lock_dir=lock_dir, timeout=0.1):
        result = subprocess.run(
            [
                sys.executable,
                "-m",
                "scripts.snapshot_watcher",
                str(watched),
                "--output-dir",
                str(output_dir),
                "--lock-dir",
                str(lock_dir),
                "--state-file",
                str(tmp_path / "appstate.json"),
            ],
            cwd=tmp_path,
            env=env,
            capture_output=True,
            text=True,
            timeout=30,
        )

    assert result.returncode == EXIT_ALREADY_RUNNING, result.stderr
    assert "Another instance" in result.stderr
    assert list(output_dir.glob("*.zst")) == []


if __name__ == "__main__":  # pragma: no cover
    pytest.main([__file__])
