from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reelhouse.core.auth import AuthContext, get_auth_context
from reelhouse.core.config import Settings, get_settings
from reelhouse.core.storage import ContentStore
from reelhouse.media import GeometryProbe, StagingArea
from reelhouse.services.upload_pipeline import UploadPipeline
from reelhouse.services.video_service import VideoService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - defensive
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_content_store(request: Request) -> ContentStore:
    store: ContentStore = request.app.state.content_store
    return store


def get_app_settings() -> Settings:
    return get_settings()


def get_staging_area(settings: Settings = Depends(get_app_settings)) -> StagingArea:
    return StagingArea(Path(settings.staging_root))


def get_geometry_probe(settings: Settings = Depends(get_app_settings)) -> GeometryProbe:
    return GeometryProbe(binary=settings.ffprobe_binary, timeout_s=settings.probe_timeout_s)


async def get_video_service(session: AsyncSession = Depends(get_session)) -> VideoService:
    return VideoService(session)


def get_upload_pipeline(
    settings: Settings = Depends(get_app_settings),
    videos: VideoService = Depends(get_video_service),
    store: ContentStore = Depends(get_content_store),
    staging: StagingArea = Depends(get_staging_area),
    probe: GeometryProbe = Depends(get_geometry_probe),
) -> UploadPipeline:
    return UploadPipeline(settings, videos, store, staging, probe)


VideoServiceDependency = Annotated[VideoService, Depends(get_video_service)]
PipelineDependency = Annotated[UploadPipeline, Depends(get_upload_pipeline)]
AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]


__all__ = [
    "get_session",
    "get_content_store",
    "get_app_settings",
    "get_staging_area",
    "get_geometry_probe",
    "get_video_service",
    "get_upload_pipeline",
    "VideoServiceDependency",
    "PipelineDependency",
    "AuthDependency",
]
