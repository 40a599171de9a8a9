import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    For local development, load `.env` automatically so `SECRET_KEY` can be
    provided from `backend/.env` (convenience). **SECRET_KEY remains required**
    and must be set in production via environment variables.

    Do NOT auto-load `.env` when running under pytest or in CI (so tests
    that validate missing secrets continue to fail fast).
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    DATABASE_URL: str = "sqlite:///./data/safety.db"
    SECRET_KEY: str = Field(
        ...,  # Required, no default
        description="JWT secret key - must be set via SECRET_KEY environment variable",
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins (JSON list in env var)",
    )

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Message safety policy
    SAFETY_BASE_SCORE: int = Field(
        default=100,
        description="Score a message starts from before rule matches are deducted",
    )
    SAFETY_SEVERITY_WEIGHT: int = Field(
        default=10,
        description="Points deducted per severity level of each matched term",
    )
    SAFETY_BLOCK_SCORE_THRESHOLD: int = Field(
        default=30,
        description="Messages scoring at or below this are blocked",
    )
    SAFETY_BLOCK_SEVERITY: int = Field(
        default=4,
        description="Any violation at or above this severity blocks the message",
    )
    AUTO_MUTE_SEVERITY: int = Field(
        default=5,
        description="Any violation at or above this severity mutes the sender",
    )
    AUTO_MUTE_DURATION_HOURS: int = Field(
        default=24,
        description="Length of the automatic mute applied for severe violations",
    )

    # Messaging limits
    MESSAGE_MAX_LENGTH: int = Field(
        default=5000,
        description="Maximum number of characters in a single message",
    )
    MESSAGE_RATE_LIMIT: str = Field(
        default="30/minute",
        description="slowapi rate limit for sending messages (per client address)",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("SAFETY_BLOCK_SEVERITY", "AUTO_MUTE_SEVERITY")
    @classmethod
    def validate_severity_bound(cls, v: int) -> int:
        """Severity thresholds must fall inside the 1-5 term severity range."""
        if not 1 <= v <= 5:
            raise ValueError("severity thresholds must be between 1 and 5")
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
