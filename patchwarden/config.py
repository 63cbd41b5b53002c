"""Engine configuration — env-driven settings shared by every project.

Centralized config using pydantic-settings for environment variable
support. Reads from .env file and PATCHWARDEN_* environment variables.
Per-project behaviour (approval mode, hooks, linter) lives in
``patchwarden.models.config.PatchConfig`` instead.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine-wide settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PATCHWARDEN_LOG_LEVEL=DEBUG
        export PATCHWARDEN_STATE_DIR_NAME=.relay

    Or via .env file::

        PATCHWARDEN_NOTIFICATION_TIMEOUT_SECONDS=10
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PATCHWARDEN_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Storage layout, relative to each project directory
    state_dir_name: str = ".patchwarden"
    database_name: str = "transactions.db"

    # Seconds the notification channel waits before reporting a timeout
    notification_timeout_seconds: float = 30.0

    def state_dir(self, directory: Path | str) -> Path:
        """Return the state directory for a project directory."""
        return Path(directory).resolve() / self.state_dir_name

    def database_path(self, directory: Path | str) -> Path:
        """Return the transaction database path for a project directory."""
        return self.state_dir(directory) / self.database_name


# Module-level singleton — import as `from patchwarden.config import settings`
settings = EngineSettings()
