"""
Configuration and settings for the FratRank backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Offline/demo mode: key/value store on disk
    local_store_dir: Optional[str] = Field(default=None)
    local_store_quota_bytes: int = Field(default=5 * 1024 * 1024)
    seed_demo_data: bool = Field(default=False)

    # S3-compatible storage for party photos
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    photo_auto_approve: bool = Field(default=False)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Rate limiting (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_key_prefix: str = Field(default="fratrank:ratelimit")

    current_semester: str = Field(default="Fall 2024")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
