"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Obligations configuration. All values come from environment variables."""

    # Owner the session runs for
    owner_id: str = Field(default="")

    # Database
    database_path: Path = Field(default=Path("data/obligations.db"))

    # Turso (hosted libSQL) — when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")
    scheduler_interval_seconds: int = Field(default=300)
    scheduler_startup_delay_seconds: float = Field(default=2.0)
    scheduler_min_interval_seconds: float = Field(default=60.0)
    scheduler_session_cap: int = Field(default=3)

    # Generation
    monthly_overflow_policy: str = Field(default="clamp")

    # Notifications
    due_soon_days: int = Field(default=3)
    default_notification_channel: str = Field(default="log")

    # Payments
    payment_currency: str = Field(default="ARS")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def session_cap(self) -> int | None:
        """Return the per-session cycle cap, or None when uncapped (<= 0)."""
        if self.scheduler_session_cap <= 0:
            return None
        return self.scheduler_session_cap


settings = Settings()
