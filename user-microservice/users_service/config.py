"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


SUPPORTED_DB_SCHEMES = ("postgresql+asyncpg://", "sqlite+aiosqlite://")


class Settings(BaseSettings):
    """Service configuration loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Pick the .env file for the current APP_ENV.

        Returns:
            None if SKIP_ENV_FILE is set (container/direct env vars)
            .env.{APP_ENV} file path otherwise (defaults to .env.dev)
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env = os.getenv("APP_ENV", "dev")
        env_file = f".env.{env}"
        if not os.path.exists(env_file):
            raise FileNotFoundError(
                f"Environment file '{env_file}' not found. "
                f"Create it or set SKIP_ENV_FILE to read the environment directly."
            )
        return env_file

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Users Service"
    APP_ENV: str = "dev"
    DB_URL: str  # Required, defined in .env files

    # ==================== Document Store ====================
    USERS_COLLECTION: str = "users"

    # ==================== Database Connection Pooling ====================
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # seconds
    DB_POOL_RECYCLE: int = 3600  # seconds

    # ==================== Database Resilience ====================
    DB_RETRY_MAX_ATTEMPTS: int = 3  # health check only, writes are never retried
    DB_RETRY_BASE_DELAY: float = 0.5
    DB_QUERY_TIMEOUT: int = 60
    DB_CONNECT_TIMEOUT: int = 10

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated allowed origins

    # ==================== Rate Limiting ====================
    RATE_LIMIT_WRITE: str = "60/minute"
    RATE_LIMIT_READ: str = "100/minute"

    # ==================== Graceful Shutdown ====================
    GRACEFUL_SHUTDOWN_TIMEOUT: int = 30

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = "users_service.log"  # empty/None disables file logging
    LOG_FORMAT: str = "console"  # "console" or "json"

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Require an async driver URL the document store knows how to talk to."""
        if not v:
            raise ValueError("DB_URL is required but not provided in environment variables")
        if not v.startswith(SUPPORTED_DB_SCHEMES):
            raise ValueError(
                f"DB_URL must use one of: {', '.join(SUPPORTED_DB_SCHEMES)}"
            )
        return v

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return v

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DB_URL.startswith("sqlite")

settings = Settings()
