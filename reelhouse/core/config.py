from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="REELHOUSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the reelhouse API."""

    model_config = SettingsConfigDict(
        env_prefix="REELHOUSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "reelhouse API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./reelhouse.db",
        description="SQLAlchemy compatible DSN.",
    )

    assets_root: Path = Field(default_factory=lambda: Path("assets"), description="Directory served for thumbnails.")
    assets_url_prefix: str = Field(default="/assets", description="URL prefix the assets directory is mounted on.")
    staging_root: Path = Field(
        default_factory=lambda: Path("/tmp"),
        description="Scratch directory for uploads while they are being processed.",
    )

    content_store_backend: Literal["local", "s3"] = Field(default="local", description="Active content store.")
    local_store_root: Path = Field(default_factory=lambda: Path("media"), description="Root for the local content store.")
    local_store_url_prefix: str = Field(default="/media", description="URL prefix the local content store is mounted on.")
    s3_bucket: Optional[str] = None
    s3_region: str = Field(default="us-east-1")
    s3_endpoint_url: Optional[str] = Field(default=None, description="Override for S3-compatible endpoints (MinIO).")
    cdn_domain: Optional[str] = Field(
        default=None,
        description="Public distribution domain used when presenting stored video URLs.",
    )

    ffprobe_binary: str = Field(default="ffprobe")
    probe_timeout_s: float = Field(default=30.0, gt=0, description="Upper bound on a single ffprobe run.")

    max_thumbnail_bytes: int = Field(default=10 << 20, description="Ceiling for thumbnail uploads.")
    max_video_bytes: int = Field(default=1 << 30, description="Ceiling for video uploads.")

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "REELHOUSE_ENV": "REELHOUSE_ENVIRONMENT",
        "REELHOUSE_DB_URL": "REELHOUSE_DATABASE_URL",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()

    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings"]
