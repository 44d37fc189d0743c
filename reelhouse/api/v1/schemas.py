from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EnvCheckResponse(BaseModel):
    ffprobe: bool


class VideoCreateRequest(BaseModel):
    title: Optional[str] = Field(default=None, json_schema_extra={"example": "Boots on the ground"})
    description: Optional[str] = Field(default=None, json_schema_extra={"example": "A short walk through the city."})


class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[Any] = None


__all__ = [
    "HealthResponse",
    "EnvCheckResponse",
    "VideoCreateRequest",
    "VideoResponse",
    "ErrorResponse",
]
