"""Error taxonomy shared by the upload pipeline and the HTTP layer."""

from __future__ import annotations

from typing import Any


class ReelhouseError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, code: str | None = None, detail: Any = None):
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(self.code if detail is None else f"{self.code}: {detail}")


class BadRequestError(ReelhouseError):
    status_code = 400
    code = "bad_request"


class SizeExceeded(BadRequestError):
    code = "file_too_large"


class UnsupportedType(BadRequestError):
    code = "unsupported_media_type"


class UnauthenticatedError(ReelhouseError):
    status_code = 401
    code = "invalid_token"


class ForbiddenError(ReelhouseError):
    status_code = 403
    code = "not_video_owner"


class NotFoundError(ReelhouseError):
    status_code = 404
    code = "video_not_found"


class UpstreamFailure(ReelhouseError):
    status_code = 502
    code = "upstream_failure"


class ProbeFailure(UpstreamFailure):
    code = "probe_failed"


class UploadFailure(UpstreamFailure):
    code = "store_upload_failed"


class StagingFailure(UpstreamFailure):
    status_code = 500
    code = "staging_failed"


__all__ = [
    "ReelhouseError",
    "BadRequestError",
    "SizeExceeded",
    "UnsupportedType",
    "UnauthenticatedError",
    "ForbiddenError",
    "NotFoundError",
    "UpstreamFailure",
    "ProbeFailure",
    "UploadFailure",
    "StagingFailure",
]
