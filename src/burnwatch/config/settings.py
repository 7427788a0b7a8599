"""
Application settings using Pydantic.

Provides environment-based configuration loading with BURNWATCH_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BURNWATCH_",
    )

    # SLO definitions
    config_path: str = "burnwatch.yaml"

    # Evaluation
    evaluation_interval_seconds: float = 60.0
    bucket_seconds: int = 60
    duplicate_policy: str = "overwrite"  # overwrite, sum
    shutdown_grace_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"

    # Notifications
    notification_timeout: float = 10.0
    slack_webhook_url: str | None = None
    pagerduty_routing_key: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
