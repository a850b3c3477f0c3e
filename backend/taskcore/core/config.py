"""
Application configuration using Pydantic Settings.

All engine tunables (generation horizon, lock lease, suggestion limits) are
read from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./taskcore.db"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # ===========================================
    # Auth
    # ===========================================
    # Only the mock bearer-token resolver ships with the engine; real
    # authentication is handled by the host application.
    AUTH_PROVIDER: Literal["mock"] = "mock"

    # ===========================================
    # Time handling
    # ===========================================
    DEFAULT_TIMEZONE: str = "UTC"

    # ===========================================
    # Recurring task generation
    # ===========================================
    RECURRING_HORIZON_DAYS: int = Field(default=7, ge=0, le=366)
    UPCOMING_MAX_DAYS: int = Field(default=7, ge=0, le=366)
    RECURRENCE_MAX_ITERATIONS: int = Field(default=1000, ge=1)

    # "memory": per-process lock table, "database": generation_locks table
    GENERATION_LOCK_PROVIDER: Literal["memory", "database"] = "memory"
    GENERATION_LOCK_TTL_SECONDS: float = Field(default=30.0, gt=0)
    GENERATION_LOCK_ACQUIRE_TIMEOUT_SECONDS: float = Field(default=2.0, gt=0)

    # ===========================================
    # Dashboard metrics
    # ===========================================
    SOMEDAY_TAG_NAME: str = "someday"
    SUGGESTION_MIN_RESULTS: int = 6
    SUGGESTION_MAX_RESULTS: int = 12
    PENDING_OVER_MONTH_DAYS: int = 30

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
