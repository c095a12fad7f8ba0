"""
Portal configuration, read from PORTAL_* environment variables or .env.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PORTAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Volunteer Governance Portal"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # "today" for meeting partitioning is evaluated in this zone
    timezone: str = "America/Los_Angeles"

    organization_name: str = "Health Matters Clinic"

    # Notifications (email / meeting-link creation live behind this hook)
    notification_webhook_url: str | None = None
    notification_timeout: float = 5.0

    # Rendered minutes and signed forms are served from here
    document_base_url: str = "/documents"


@lru_cache
def get_settings() -> Settings:
    return Settings()
