"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_EXTRA_PATH = "/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin:/opt/homebrew/bin"


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """ZapTasks configuration. All values come from environment variables."""

    # Execution backend: "remote" (HTTP shell service) or "local" (bash subprocess)
    execution_backend: str = Field(default="remote")
    backend_base_url: str = Field(default="http://localhost:7575")
    health_path: str = Field(default="/health")
    health_timeout_seconds: float = Field(default=5.0)

    # Local executor
    shell: str = Field(default="/bin/bash")
    extra_path: str = Field(default=_DEFAULT_EXTRA_PATH)

    # Database
    database_path: Path = Field(default=Path("data/zaptasks.db"))

    # Scheduler
    tick_interval_seconds: float = Field(default=60.0)
    scheduler_timezone: str = Field(default="")

    # Notifications
    notification_preview_length: int = Field(default=100)
    notification_webhook_url: str = Field(default="")

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

    def health_url(self) -> str | None:
        """Return the backend liveness URL, or None when running commands locally."""
        if self.execution_backend == "local":
            return None
        path = self.health_path if self.health_path.startswith("/") else f"/{self.health_path}"
        return self.backend_base_url.rstrip("/") + path

    def get_extra_path(self) -> list[str]:
        """Parse EXTRA_PATH into a list of directories."""
        return [p.strip() for p in self.extra_path.split(":") if p.strip()]


settings = Settings()
