"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key shared with the platform auth service to verify JWT tokens",
        min_length=1,
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL backing the email work queue",
    )
    email_queue_name: str = Field(
        default="notifications-email",
        description="Name of the RQ queue consumed by the immediate send worker",
    )
    email_job_timeout_seconds: int = Field(default=120, gt=0)
    app_base_url: str = Field(
        default="",
        description="Public URL of the web application, used to absolutize action links",
    )
    app_timezone: str = Field(
        default="America/New_York",
        description="Timezone used for digest scheduling and dates rendered in emails",
    )

    domain_event_batch_size: int = Field(default=25, gt=0)
    domain_event_poll_seconds: int = Field(default=30, gt=0)
    domain_event_last_error_max_length: int = Field(default=2000, gt=0)
    domain_event_max_attempts: int | None = Field(
        default=None,
        description="Attempts after which a failing event is dead-lettered; unset retries forever",
        gt=0,
    )
    domain_event_claim_timeout_minutes: int | None = Field(
        default=None,
        description="Minutes after which a PROCESSING claim is considered abandoned",
        gt=0,
    )

    email_enqueue_batch_size: int = Field(default=25, gt=0)
    email_enqueue_poll_seconds: int = Field(default=10, gt=0)
    immediate_email_max_batch: int = Field(default=10, gt=0)

    digest_max_items: int = Field(default=20, gt=0)
    digest_hour: int = Field(default=9, ge=0, le=23)
    digest_minute: int = Field(default=0, ge=0, le=59)
    digest_lease_seconds: int = Field(default=3600, gt=0)

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
