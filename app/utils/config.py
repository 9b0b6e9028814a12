"""
Configuration management for the file snapshot watchman.

Uses pydantic-settings to load configuration from explicit arguments,
environment variables and .env files. The watch path may additionally fall
back to the path recorded in the persisted state file.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.models.schemas import PersistedState, WatchTarget
from app.utils.helpers import normalise_path


# Process exit codes
EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_STALLED = 2
EXIT_ALREADY_RUNNING = 3


class ConfigurationError(Exception):
    """Raised when the watch target cannot be resolved."""


class Settings(BaseSettings):
    """Application settings loaded from arguments and environment."""

    # Watch target
    watch_path: Optional[Path] = None
    output_dir: Path = Path(".")

    # Timing (seconds)
    quiet_period: float = Field(default=30.0, gt=0)
    poll_interval: float = Field(default=5.0, gt=0)

    # Single instance coordination
    single_instance: bool = True
    instance_wait: float = Field(default=5.0, ge=0)
    lock_dir: Optional[Path] = None

    # Persistence and output
    state_file: Path = Path("appstate.json")
    compression_level: int = Field(default=1, ge=-7, le=22)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="WATCHMAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore"
    )


def load_settings(**overrides) -> Settings:
    """
    Build settings with explicit overrides taking priority over the environment.

    Args:
        **overrides: Values given on the command line; ``None`` means "not given"

    Returns:
        Settings instance
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**explicit)


def resolve_watch_target(settings: Settings, state: Optional[PersistedState]) -> WatchTarget:
    """
    Resolve the immutable per-run watch target.

    The watch path comes from settings (argument or environment) and falls
    back to the last path recorded in the persisted state. The output
    directory is created if it does not exist.

    Args:
        settings: Loaded settings
        state: Previously persisted state, if any

    Returns:
        WatchTarget

    Raises:
        ConfigurationError: If no watch path can be resolved
    """
    watch_path = settings.watch_path
    if watch_path is None and state is not None and state.last_file_path:
        watch_path = Path(state.last_file_path)

    if watch_path is None or not str(watch_path).strip():
        raise ConfigurationError("File path not specified")

    output_dir = normalise_path(settings.output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create output directory {output_dir}: {e}") from e

    return WatchTarget(
        file_path=normalise_path(watch_path),
        output_dir=output_dir,
        quiet_period=settings.quiet_period,
        poll_interval=settings.poll_interval,
        single_instance=settings.single_instance,
        compression_level=settings.compression_level,
    )
