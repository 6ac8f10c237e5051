"""
Configuration and settings for the forms backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Request validation (off stores form bodies as submitted)
    validate_requests: bool = Field(default=True)

    # Auth
    auth_mode: Literal["none", "jwt"] = Field(default="none")
    jwt_secret: str = Field(default="change-me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_in: int = Field(default=3600, ge=1)

    # Rate limiting
    rate_limit_enabled: bool = Field(default=False)
    rate_limit_window_seconds: int = Field(default=15 * 60, ge=1)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    redis_url: Optional[str] = Field(default=None)
    redis_rate_limit_prefix: str = Field(default="formsapp:ratelimit")

    # HTTP
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
