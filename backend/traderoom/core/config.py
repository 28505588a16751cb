"""
Application configuration settings.

All configuration is loaded from environment variables with sensible defaults.
"""
import json
from typing import Any
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Trade Room"
    api_debug: bool = True
    secret_key: str = "dev-secret-key-change-in-production"  # SECURITY: Must be overridden in production via env var

    # JWT Settings
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24  # 24 hours

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    # Database
    postgres_host: str = "db"
    postgres_port: int = 5432
    postgres_user: str = "trade_user"
    postgres_password: str = "trade_password"
    postgres_db: str = "trade_room"
    database_url: str | None = None

    # Trade rooms
    room_slug_min_length: int = 10
    room_slug_max_attempts: int = 5
    my_trades_limit: int = 50

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from JSON string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v

    @property
    def database_url_computed(self) -> str:
        """Compute database URL from components if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()

    # Security check: warn if using default secret key in production
    if not settings.api_debug and settings.secret_key == "dev-secret-key-change-in-production":
        import warnings
        warnings.warn(
            "SECURITY WARNING: Using default secret_key in production! "
            "Set SECRET_KEY environment variable to a secure random value.",
            UserWarning
        )

    return settings


settings = get_settings()
