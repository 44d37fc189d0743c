from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Optional, Protocol

from reelhouse.core.auth import authorize_owner
from reelhouse.core.config import Settings
from reelhouse.core.errors import BadRequestError, NotFoundError, StagingFailure
from reelhouse.core.logging import bound_context, get_logger
from reelhouse.core.storage import ContentStore
from reelhouse.db.models import Video
from reelhouse.media import (
    THUMBNAIL_CONTENT_TYPES,
    VIDEO_CONTENT_TYPES,
    FilePart,
    GeometryProbe,
    StagingArea,
    thumbnail_extension,
    thumbnail_filename,
    validate,
    video_storage_key,
)
from reelhouse.media.keys import VIDEO_EXTENSION


class VideoRecords(Protocol):
    async def get(self, video_id: str) -> Video | None: ...

    async def update(self, video: Video) -> Video: ...


class UploadPipeline:
    """Ingest thumbnails and video files for an existing video record.

    Every flow resolves the record, checks ownership, validates the part and
    only then touches the filesystem, the content store or the record. A
    failure at any stage leaves the record untouched. Concurrent uploads for
    the same record are not serialised; the last one to finish wins.
    """

    def __init__(
        self,
        settings: Settings,
        records: VideoRecords,
        store: ContentStore,
        staging: StagingArea,
        probe: GeometryProbe,
    ):
        self.settings = settings
        self.records = records
        self.store = store
        self.staging = staging
        self.probe = probe
        self.logger = get_logger(component="upload_pipeline")

    async def _load_owned(self, video_id: str, principal_id: str) -> Video:
        video = await self.records.get(video_id)
        if video is None:
            raise NotFoundError(detail=video_id)
        authorize_owner(principal_id, video)
        return video

    @staticmethod
    def _require_part(part: Optional[FilePart], field: str) -> FilePart:
        if part is None:
            raise BadRequestError("missing_file_part", detail=f"multipart field '{field}' is required")
        return part

    async def upload_thumbnail(self, *, video_id: str, principal_id: str, part: Optional[FilePart]) -> Video:
        with bound_context(video_id=video_id, principal_id=principal_id):
            video = await self._load_owned(video_id, principal_id)
            part = self._require_part(part, "thumbnail")
            validate(part, THUMBNAIL_CONTENT_TYPES, self.settings.max_thumbnail_bytes)

            extension = thumbnail_extension(part.content_type)
            filename = thumbnail_filename(video.id, part.content_type)
            assets_root = Path(self.settings.assets_root)

            async with self.staging.stage(
                video.id,
                part,
                extension=extension,
                max_bytes=self.settings.max_thumbnail_bytes,
            ) as staged:
                try:
                    await asyncio.to_thread(_publish, staged.path, assets_root / filename)
                except OSError as exc:
                    raise StagingFailure(detail=str(exc)) from exc

            video.thumbnail_url = f"{self.settings.assets_url_prefix.rstrip('/')}/{filename}"
            video = await self.records.update(video)
            self.logger.info("thumbnail_saved", thumbnail_url=video.thumbnail_url)
            return video

    async def upload_video(self, *, video_id: str, principal_id: str, part: Optional[FilePart]) -> Video:
        with bound_context(video_id=video_id, principal_id=principal_id):
            video = await self._load_owned(video_id, principal_id)
            part = self._require_part(part, "video")
            validate(part, VIDEO_CONTENT_TYPES, self.settings.max_video_bytes)
            self.logger.info("video_upload_started", size_bytes=part.size)

            async with self.staging.stage(
                video.id,
                part,
                extension=VIDEO_EXTENSION,
                max_bytes=self.settings.max_video_bytes,
            ) as staged:
                geometry = await self.probe.probe(staged.path)
                key = video_storage_key(video.id, geometry)
                await self.store.upload(key, staged.path, staged.content_type)
                self.logger.info("video_uploaded", key=key, geometry=geometry.value)

            video.video_url = self.store.public_url(key)
            return await self.records.update(video)


def _publish(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(source, target)
    except OSError:
        # staging and assets may sit on different filesystems
        partial = target.with_name(f".{target.name}.partial")
        try:
            shutil.copyfile(source, partial)
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)


__all__ = ["UploadPipeline", "VideoRecords"]
