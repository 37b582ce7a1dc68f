"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration shared across services."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///./reservations.db",
        description="SQLAlchemy database URL. Defaults to local SQLite for development.",
    )
    run_db_migrations: bool = Field(
        default=False,
        description="Whether this service should create/update database tables on startup.",
    )
    jwt_secret: str = Field(default="super-secret", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60, description="Token lifetime in minutes")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="30/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")
    resource_cache_ttl: int = Field(default=60, description="TTL (s) for cached room/vehicle listings")

    allowed_email_domain: str = Field(
        default="@alkhidmat.org",
        description="Suffix every registered email address must end with.",
    )
    upload_dir: str = Field(default="./uploads", description="Directory holding locally stored resource photos")
    log_dir: str = Field(default="./logs", description="Directory for per-service audit logs")

    min_booking_hours: int = Field(default=1, description="Shortest reservation, in whole hours")
    max_booking_hours: int = Field(default=8, description="Longest reservation, in whole hours")
    conflict_scan_includes_cancelled: bool = Field(
        default=False,
        description="Treat cancelled reservations as still occupying their slot.",
    )

    event_publishing_enabled: bool = Field(default=False, description="Publish reservation events to RabbitMQ")
    rabbitmq_host: str = Field(default="rabbitmq", description="RabbitMQ broker host")
    reservation_events_queue: str = Field(default="reservations", description="Durable queue for reservation events")

    users_service_port: int = 8001
    resources_service_port: int = 8002
    bookings_service_port: int = 8003


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
