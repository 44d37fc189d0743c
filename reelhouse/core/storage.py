from __future__ import annotations

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import UploadFailure
from .logging import get_logger


class ContentStore(ABC):
    """Durable home for uploaded media, addressed by storage key."""

    @abstractmethod
    async def upload(self, key: str, local_path: Path, content_type: str) -> None: ...

    @abstractmethod
    def public_url(self, key: str) -> str: ...


class LocalContentStore(ContentStore):
    """Filesystem-backed content store suitable for development."""

    def __init__(self, base_path: Path, url_prefix: str = "/media"):
        self.base_path = base_path
        self.url_prefix = url_prefix.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        target = (self.base_path / key).resolve()
        if not target.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Storage key escapes the store root: {key}")
        return target

    async def upload(self, key: str, local_path: Path, content_type: str) -> None:
        target = self._resolve(key)
        try:
            await asyncio.to_thread(self._copy, local_path, target)
        except OSError as exc:
            raise UploadFailure(detail=str(exc)) from exc

    @staticmethod
    def _copy(source: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)

    def public_url(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"


class S3ContentStore(ContentStore):
    """S3 (or S3-compatible) content store backed by boto3."""

    def __init__(self, bucket: str, region: str, *, endpoint_url: str | None = None, client: Any | None = None):
        self.bucket = bucket
        self.region = region
        self.logger = get_logger(component="s3_content_store", bucket=bucket)
        if client is None:  # pragma: no cover - requires AWS configuration
            client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint_url,
                config=Config(signature_version="s3v4"),
            )
        self.client = client

    async def upload(self, key: str, local_path: Path, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.upload_file,
                str(local_path),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError) as exc:
            self.logger.error("s3_upload_failed", key=key, error=str(exc))
            raise UploadFailure(detail=str(exc)) from exc
        self.logger.info("s3_upload_succeeded", key=key)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def to_distribution_url(url: str | None, cdn_domain: str | None) -> str | None:
    """Present an absolute store URL through the public distribution domain."""
    if not url or not cdn_domain:
        return url
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or parsed.netloc == cdn_domain:
        return url
    return f"https://{cdn_domain}/{parsed.path.lstrip('/')}"


def get_content_store(settings: Settings) -> ContentStore:
    if settings.content_store_backend == "local":
        return LocalContentStore(Path(settings.local_store_root), settings.local_store_url_prefix)
    if settings.content_store_backend == "s3":
        if not settings.s3_bucket:
            raise ValueError("REELHOUSE_S3_BUCKET is required for the s3 content store")
        return S3ContentStore(settings.s3_bucket, settings.s3_region, endpoint_url=settings.s3_endpoint_url)
    raise ValueError(f"Unsupported content store backend: {settings.content_store_backend}")


__all__ = [
    "ContentStore",
    "LocalContentStore",
    "S3ContentStore",
    "to_distribution_url",
    "get_content_store",
]
