from __future__ import annotations

import pytest

from reelhouse.core.errors import BadRequestError, SizeExceeded, UnsupportedType
from reelhouse.media.validator import THUMBNAIL_CONTENT_TYPES, VIDEO_CONTENT_TYPES, validate
from tests.conftest import make_part

TEN_MIB = 10 << 20
ONE_GIB = 1 << 30


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png"])
def test_thumbnail_types_accepted(content_type):
    validate(make_part(field="thumbnail", content_type=content_type, size=TEN_MIB), THUMBNAIL_CONTENT_TYPES, TEN_MIB)


@pytest.mark.parametrize("declared", [TEN_MIB + 1, 50 * TEN_MIB])
def test_declared_size_over_ceiling_rejected_even_with_few_bytes(declared):
    part = make_part(b"tiny", field="thumbnail", content_type="image/png", size=declared)
    with pytest.raises(SizeExceeded) as excinfo:
        validate(part, THUMBNAIL_CONTENT_TYPES, TEN_MIB)
    assert excinfo.value.status_code == 400
    assert isinstance(excinfo.value, BadRequestError)


@pytest.mark.parametrize(
    "content_type",
    ["image/gif", "IMAGE/PNG", "image/jpg", "image/png; charset=binary", "", "video/mp4"],
)
def test_thumbnail_type_matching_is_exact(content_type):
    part = make_part(field="thumbnail", content_type=content_type)
    with pytest.raises(UnsupportedType):
        validate(part, THUMBNAIL_CONTENT_TYPES, TEN_MIB)


@pytest.mark.parametrize("content_type", ["video/quicktime", "video/MP4", "application/octet-stream"])
def test_video_only_accepts_mp4(content_type):
    with pytest.raises(UnsupportedType):
        validate(make_part(content_type=content_type), VIDEO_CONTENT_TYPES, ONE_GIB)


def test_size_checked_before_type():
    part = make_part(content_type="image/gif", size=ONE_GIB + 1)
    with pytest.raises(SizeExceeded):
        validate(part, VIDEO_CONTENT_TYPES, ONE_GIB)


def test_validate_does_not_consume_stream():
    part = make_part(b"payload", content_type="video/mp4")
    validate(part, VIDEO_CONTENT_TYPES, ONE_GIB)
    assert part.stream._buffer.tell() == 0
