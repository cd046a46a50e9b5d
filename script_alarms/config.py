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
    """Scheduler configuration. All values come from environment variables."""

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")
    inexact_window_seconds: float = Field(default=60.0, ge=0)
    misfire_grace_seconds: int = Field(default=30, ge=1)

    # Persistence
    persist_triggers: bool = Field(default=True)
    database_path: Path = Field(default=Path("data/script_alarms.db"))

    # Script execution
    script_dir: Path = Field(default=Path("scripts"))
    script_interpreter: str = Field(default="")
    script_timeout_seconds: float = Field(default=0.0, ge=0)

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

    def get_interpreter_argv(self) -> list[str]:
        """Split SCRIPT_INTERPRETER into argv parts (empty → run scripts directly)."""
        return self.script_interpreter.split()


settings = Settings()
