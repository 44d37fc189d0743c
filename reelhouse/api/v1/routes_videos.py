from __future__ import annotations

import asyncio
import os
from typing import BinaryIO

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from reelhouse.api import deps
from reelhouse.core.auth import authorize_owner
from reelhouse.core.config import Settings
from reelhouse.core.errors import BadRequestError, NotFoundError
from reelhouse.core.storage import to_distribution_url
from reelhouse.db.models import Video
from reelhouse.media import FilePart

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])


def _measure(handle: BinaryIO) -> int:
    position = handle.tell()
    handle.seek(0, os.SEEK_END)
    size = handle.tell()
    handle.seek(position)
    return size


async def _file_part(field: str, upload: UploadFile | None) -> FilePart | None:
    if upload is None:
        return None
    size = upload.size
    if size is None:
        size = await asyncio.to_thread(_measure, upload.file)
    return FilePart(
        field=field,
        content_type=upload.content_type or "",
        size=size,
        stream=upload,
        filename=upload.filename,
    )


def _present(video: Video, settings: Settings) -> schemas.VideoResponse:
    response = schemas.VideoResponse.model_validate(video)
    response.video_url = to_distribution_url(response.video_url, settings.cdn_domain)
    return response


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.VideoCreateRequest,
    videos: deps.VideoServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    title = (payload.title or "").strip()
    description = (payload.description or "").strip()
    if not title or not description:
        raise BadRequestError("missing_fields", detail="title and description are required")
    video = await videos.create(user_id=context.user_id, title=title, description=description)
    return schemas.VideoResponse.model_validate(video)


@router.get("", response_model=list[schemas.VideoResponse])
async def list_videos(
    videos: deps.VideoServiceDependency,
    context: deps.AuthDependency,
    settings: Settings = Depends(deps.get_app_settings),
) -> list[schemas.VideoResponse]:
    owned = await videos.list_by_owner(context.user_id)
    return [_present(video, settings) for video in owned]


@router.get("/{video_id}", response_model=schemas.VideoResponse)
async def get_video(
    video_id: str,
    videos: deps.VideoServiceDependency,
    settings: Settings = Depends(deps.get_app_settings),
) -> schemas.VideoResponse:
    video = await videos.get(video_id)
    if video is None:
        raise NotFoundError(detail=video_id)
    return _present(video, settings)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: str,
    videos: deps.VideoServiceDependency,
    context: deps.AuthDependency,
) -> Response:
    video = await videos.get(video_id)
    if video is None:
        raise NotFoundError(detail=video_id)
    authorize_owner(context.user_id, video)
    await videos.delete(video)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{video_id}/thumbnail", response_model=schemas.VideoResponse)
async def upload_thumbnail(
    video_id: str,
    pipeline: deps.PipelineDependency,
    context: deps.AuthDependency,
    thumbnail: UploadFile | None = File(default=None),
) -> schemas.VideoResponse:
    part = await _file_part("thumbnail", thumbnail)
    video = await pipeline.upload_thumbnail(video_id=video_id, principal_id=context.user_id, part=part)
    return schemas.VideoResponse.model_validate(video)


@router.post("/{video_id}/upload", response_model=schemas.VideoResponse)
async def upload_video(
    video_id: str,
    pipeline: deps.PipelineDependency,
    context: deps.AuthDependency,
    video: UploadFile | None = File(default=None),
) -> schemas.VideoResponse:
    part = await _file_part("video", video)
    updated = await pipeline.upload_video(video_id=video_id, principal_id=context.user_id, part=part)
    return schemas.VideoResponse.model_validate(updated)


__all__ = ["router"]
