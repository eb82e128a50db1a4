"""
Configuration and settings for the Message in a Bottle backend.
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

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible storage for photos and the content document
    cos_endpoint: Optional[str] = Field(default=None)
    cos_region: Optional[str] = Field(default=None)
    cos_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Message cache (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_cache_prefix: str = Field(default="bottle:cache")
    message_cache_ttl_seconds: int = Field(default=24 * 60 * 60, ge=1)
    recently_viewed_limit: int = Field(default=5, ge=1)

    # Browsing
    recipient_batch_size: int = Field(default=8, ge=1)
    recipient_browse_window: int = Field(default=100, ge=1)
    browse_page_size: int = Field(default=20, ge=1)
    admin_page_size: int = Field(default=10, ge=1)

    # Music search proxy
    spotify_client_id: Optional[str] = Field(default=None)
    spotify_client_secret: Optional[str] = Field(default=None)

    # Visitor geolocation
    geo_api_url: str = Field(default="http://ip-api.com/json/{ip}")
    geo_api_key: Optional[str] = Field(default=None)

    # Auth
    firebase_project_id: Optional[str] = Field(default=None)
    admin_emails: list[str] = Field(default_factory=list)

    # Content document; stored in object storage when no path is set.
    content_path: Optional[str] = Field(default=None)

    # Images
    max_photo_bytes: int = Field(default=2 * 1024 * 1024, ge=1)
    photo_max_dimension: int = Field(default=1024, ge=16)

    site_base_url: str = Field(default="https://message-in-a-bottle.example.com")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
