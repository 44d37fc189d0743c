from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reelhouse.core.logging import get_logger
from reelhouse.db.models import Video


class VideoService:
    """Record store for video metadata."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = get_logger(component="video_service")

    async def get(self, video_id: str) -> Video | None:
        return await self.session.get(Video, video_id)

    async def create(self, *, user_id: str, title: str, description: str) -> Video:
        video = Video(user_id=user_id, title=title, description=description)
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        self.logger.info("video_created", video_id=video.id, user_id=user_id)
        return video

    async def update(self, video: Video) -> Video:
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return video

    async def delete(self, video: Video) -> None:
        await self.session.delete(video)
        await self.session.commit()
        self.logger.info("video_deleted", video_id=video.id)

    async def list_by_owner(self, user_id: str) -> Sequence[Video]:
        stmt = select(Video).where(Video.user_id == user_id).order_by(Video.created_at.desc(), Video.id)
        result = await self.session.execute(stmt)
        return result.scalars().all()


__all__ = ["VideoService"]
