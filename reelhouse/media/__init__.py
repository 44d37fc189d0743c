"""Media handling primitives used by the upload pipeline."""

from .keys import thumbnail_extension, thumbnail_filename, video_storage_key
from .probe import GeometryClass, GeometryProbe, classify_dimensions, parse_dimensions
from .staging import StagedFile, StagingArea
from .validator import THUMBNAIL_CONTENT_TYPES, VIDEO_CONTENT_TYPES, FilePart, validate

__all__ = [
    "FilePart",
    "GeometryClass",
    "GeometryProbe",
    "StagedFile",
    "StagingArea",
    "THUMBNAIL_CONTENT_TYPES",
    "VIDEO_CONTENT_TYPES",
    "classify_dimensions",
    "parse_dimensions",
    "thumbnail_extension",
    "thumbnail_filename",
    "validate",
    "video_storage_key",
]
