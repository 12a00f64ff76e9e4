"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from bgqueue.constants import DEFAULT_CAPACITY, DEFAULT_QUEUE_NAME


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Queue Configuration
    queue_name: str = DEFAULT_QUEUE_NAME
    queue_capacity: int = DEFAULT_CAPACITY
    queue_task_timeout_seconds: float | None = None
    queue_shutdown_timeout_seconds: float | None = 30.0

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Observability
    otel_exporter_otlp_endpoint: str | None = None
    otel_service_name: str = "bgqueue"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
