from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Optional, Protocol

from reelhouse.core.errors import SizeExceeded, UnsupportedType

THUMBNAIL_CONTENT_TYPES = frozenset({"image/jpeg", "image/png"})
VIDEO_CONTENT_TYPES = frozenset({"video/mp4"})


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


@dataclass(slots=True)
class FilePart:
    """A single file part taken from a multipart form field.

    ``content_type`` and ``size`` are what the client declared; nothing here
    looks at the bytes themselves.
    """

    field: str
    content_type: str
    size: int
    stream: AsyncReadable
    filename: Optional[str] = None


def validate(part: FilePart, allowed_types: AbstractSet[str], max_bytes: int) -> None:
    """Reject ``part`` when its declared size or content type is out of policy.

    Raises:
        SizeExceeded: The declared size is larger than ``max_bytes``.
        UnsupportedType: The declared content type is not exactly one of ``allowed_types``.
    """
    if part.size > max_bytes:
        raise SizeExceeded(detail=f"{part.field} exceeds {max_bytes} bytes")
    if part.content_type not in allowed_types:
        allowed = ", ".join(sorted(allowed_types))
        raise UnsupportedType(detail=f"{part.field} must be one of: {allowed}")


__all__ = [
    "THUMBNAIL_CONTENT_TYPES",
    "VIDEO_CONTENT_TYPES",
    "AsyncReadable",
    "FilePart",
    "validate",
]
