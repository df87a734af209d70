"""
Configuration settings for the Driver Portal data module.
Reads from environment variables with sensible defaults.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PostgreSQL
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "portal"
    postgres_password: str = "portal_password"
    postgres_db: str = "driver_portal"

    # Full URL override (tests and local runs use sqlite)
    database_url: Optional[str] = None

    # Redis (login throttle)
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0

    # Runtime
    environment: str = "development"
    debug: bool = False

    # Driver Authentication
    token_expiry_hours: int = 24  # Session token expiration time in hours
    allow_offline_drivers: bool = True  # Offline drivers may still log in
    login_throttle_enabled: bool = False
    login_max_attempts: int = 5
    login_window_seconds: int = 300

    # Driver project feed
    fetch_max_retries: int = 3
    fetch_base_delay_seconds: float = 2.0

    # Direct access links / API client
    portal_base_url: str = "http://localhost:5173"
    portal_api_url: str = "http://localhost:8080"
    request_timeout_seconds: float = 10.0

    # API
    api_prefix: str = "/api/v1"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
