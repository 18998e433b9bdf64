"""Configuration models for the application."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EventSyncConfig(BaseSettings):
    """Main configuration for the eventsync client."""

    # Backend
    base_url: str = Field(default="http://localhost:3000", description="Root URL of the events REST backend")
    request_timeout: float = Field(default=10.0, description="HTTP timeout in seconds")

    # Mutations
    cascade_user_delete: bool = Field(
        default=True,
        description="Delete the creator's user record together with the event",
    )

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="EVENTSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
