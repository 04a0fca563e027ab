"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Scheduler configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./snooze.db",
        description="Database connection URL used by SQLAlchemy to store scheduled notifications",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA name or UTC offset used to interpret naive datetimes",
    )
    send_tolerance: int = Field(
        default=60 * 60 * 24,
        description="Seconds after send_at during which a due notification is still delivered",
        ge=0,
    )
    snooze_disabled: bool = Field(
        default=False,
        description="Skip the due-notification pass entirely when enabled",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used by the email dispatcher",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of scheduled emails",
        min_length=3,
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
