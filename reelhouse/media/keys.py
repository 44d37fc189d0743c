from __future__ import annotations

from .probe import GeometryClass

VIDEO_EXTENSION = "mp4"


def video_storage_key(record_id: str, geometry: GeometryClass | str) -> str:
    """Content store key for a video: ``{geometry}/{record_id}.mp4``."""
    return f"{GeometryClass(geometry).value}/{record_id}.{VIDEO_EXTENSION}"


def thumbnail_extension(content_type: str) -> str:
    return "jpg" if content_type == "image/jpeg" else "png"


def thumbnail_filename(record_id: str, content_type: str) -> str:
    return f"{record_id}.{thumbnail_extension(content_type)}"


__all__ = ["VIDEO_EXTENSION", "video_storage_key", "thumbnail_extension", "thumbnail_filename"]
