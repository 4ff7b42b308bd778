"""Application settings loaded from environment variables."""

import os
from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Dispatcher configuration. All values come from environment variables."""

    # Persistence
    schedules_path: Path = Field(default=Path("data/schedules.json"))

    # Scheduler
    scheduler_timezone: str = Field(default="Asia/Kolkata")
    dispatch_interval_seconds: int = Field(default=60)
    retention_hours: int = Field(default=24)
    send_timeout_seconds: float = Field(default=30.0)

    # Addressing
    default_country_code: str = Field(default="91")
    whatsapp_address_suffix: str = Field(default="@c.us")

    # Green API (WhatsApp gateway)
    green_api_url: str = Field(default="https://api.green-api.com")
    green_api_instance_id: str = Field(default="")
    green_api_token: str = Field(default="")
    transport_state_poll_seconds: int = Field(default=15)

    # Admin HTTP surface
    admin_host: str = Field(default="0.0.0.0")
    admin_port: int = Field(default=3000)
    admin_token: str = Field(default="")

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

    @property
    def retention_window(self) -> timedelta:
        """How long a sent record is kept, measured from its due time."""
        return timedelta(hours=self.retention_hours)

    def green_api_configured(self) -> bool:
        """True when both the instance ID and its API token are set."""
        return bool(self.green_api_instance_id.strip() and self.green_api_token.strip())


settings = Settings()
