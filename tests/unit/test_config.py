from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from app.models.schemas import PersistedState
from app.utils.config import (
    ConfigurationError,
    Settings,
    load_settings,
    resolve_watch_target,
)

ENV_VARS = [
    "WATCHMAN_WATCH_PATH",
    "WATCHMAN_OUTPUT_DIR",
    "WATCHMAN_QUIET_PERIOD",
    "WATCHMAN_POLL_INTERVAL",
    "WATCHMAN_SINGLE_INSTANCE",
    "WATCHMAN_INSTANCE_WAIT",
    "WATCHMAN_LOCK_DIR",
    "WATCHMAN_STATE_FILE",
    "WATCHMAN_COMPRESSION_LEVEL",
    "WATCHMAN_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep any developer .env out of the way
    monkeypatch.chdir(tmp_path)


def make_state(path: str) -> PersistedState:
    return PersistedState(
        last_fingerprint="abc",
        last_file_path=path,
        last_processed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_defaults():
    settings = Settings()

    assert settings.watch_path is None
    assert settings.output_dir == Path(".")
    assert settings.quiet_period == 30
    assert settings.poll_interval == 5
    assert settings.single_instance is True
    assert settings.state_file == Path("appstate.json")


def test_environment_overrides_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("WATCHMAN_WATCH_PATH", str(tmp_path / "data.lua"))
    monkeypatch.setenv("WATCHMAN_QUIET_PERIOD", "2")
    monkeypatch.setenv("WATCHMAN_SINGLE_INSTANCE", "false")

    settings = load_settings()

    assert settings.watch_path == tmp_path / "data.lua"
    assert settings.quiet_period == 2
    assert settings.single_instance is False


def test_empty_single_instance_env_keeps_default(monkeypatch):
    monkeypatch.setenv("WATCHMAN_SINGLE_INSTANCE", "")

    assert load_settings().single_instance is True


def test_explicit_arguments_beat_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("WATCHMAN_WATCH_PATH", str(tmp_path / "from_env.lua"))
    monkeypatch.setenv("WATCHMAN_POLL_INTERVAL", "9")

    settings = load_settings(watch_path=tmp_path / "from_arg.lua", poll_interval=None)

    assert settings.watch_path == tmp_path / "from_arg.lua"
    # None means "not given" and falls through to the environment
    assert settings.poll_interval == 9


def test_non_positive_intervals_rejected():
    with pytest.raises(ValidationError):
        load_settings(quiet_period=0)
    with pytest.raises(ValidationError):
        load_settings(poll_interval=-1)


def test_resolve_uses_settings_path_and_creates_output_dir(tmp_path):
    output_dir = tmp_path / "out" / "nested"
    settings = load_settings(watch_path=tmp_path / "data.lua", output_dir=output_dir)

    target = resolve_watch_target(settings, make_state(str(tmp_path / "old.lua")))

    assert target.file_path == (tmp_path / "data.lua").resolve()
    assert target.output_dir == output_dir.resolve()
    assert output_dir.is_dir()
    assert target.liveness_interval == (5 + 30) * 2


def test_resolve_falls_back_to_persisted_path(tmp_path):
    settings = load_settings(output_dir=tmp_path)

    target = resolve_watch_target(settings, make_state(str(tmp_path / "old.lua")))

    assert target.file_path == (tmp_path / "old.lua").resolve()


def test_resolve_without_any_path_fails(tmp_path):
    settings = load_settings(output_dir=tmp_path)

    with pytest.raises(ConfigurationError):
        resolve_watch_target(settings, None)


def test_watch_target_is_frozen(tmp_path):
    target = resolve_watch_target(
        load_settings(watch_path=tmp_path / "data.lua", output_dir=tmp_path), None
    )

    with pytest.raises(ValidationError):
        target.quiet_period = 1


if __name__ == "__main__":  # pragma: no cover
    pytest.main([__file__])
