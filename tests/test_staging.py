from __future__ import annotations

import asyncio

import pytest

from reelhouse.core.errors import SizeExceeded
from reelhouse.media import staging as staging_module
from reelhouse.media.staging import CHUNK_SIZE, StagingArea
from tests.conftest import make_part


def test_stage_writes_then_releases(tmp_path):
    staging = StagingArea(tmp_path / "staging")
    seen = {}

    async def _run() -> None:
        async with staging.stage("vid1", make_part(b"x" * 3000), extension="mp4") as staged:
            seen["path"] = staged.path
            seen["bytes"] = staged.path.read_bytes()
            assert staged.size_bytes == 3000
            assert staged.content_type == "video/mp4"

    asyncio.run(_run())
    assert seen["path"] == tmp_path / "staging" / "vid1.mp4"
    assert seen["bytes"] == b"x" * 3000
    assert not seen["path"].exists()


def test_stage_releases_when_block_raises(tmp_path):
    staging = StagingArea(tmp_path)

    async def _run() -> None:
        async with staging.stage("vid2", make_part(b"data"), extension="mp4"):
            raise RuntimeError("downstream failure")

    with pytest.raises(RuntimeError):
        asyncio.run(_run())
    assert not (tmp_path / "vid2.mp4").exists()


def test_stage_enforces_streamed_ceiling(tmp_path):
    staging = StagingArea(tmp_path)
    part = make_part(b"y" * 64, size=8)

    async def _run() -> None:
        async with staging.stage("vid3", part, extension="mp4", max_bytes=16):
            pytest.fail("block must not run for an oversize stream")

    with pytest.raises(SizeExceeded):
        asyncio.run(_run())
    assert not (tmp_path / "vid3.mp4").exists()


def test_stage_releases_on_cancellation(tmp_path):
    staging = StagingArea(tmp_path)
    entered = {}

    async def _upload(ready: asyncio.Event) -> None:
        async with staging.stage("vid4", make_part(b"data"), extension="mp4") as staged:
            entered["path"] = staged.path
            ready.set()
            await asyncio.sleep(60)

    async def _run() -> None:
        ready = asyncio.Event()
        task = asyncio.create_task(_upload(ready))
        await ready.wait()
        assert entered["path"].exists()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_run())
    assert not entered["path"].exists()


def test_release_tolerates_missing_file(tmp_path):
    staging = StagingArea(tmp_path)
    path = staging.path_for("gone", "mp4")
    staging.release(path)
    staging.release(path)
    assert not path.exists()


@pytest.mark.parametrize("record_id", ["../escape", "a/b", "", ".."])
def test_path_for_rejects_unsafe_names(tmp_path, record_id):
    with pytest.raises(ValueError):
        StagingArea(tmp_path).path_for(record_id, "mp4")


def test_stage_file_io_runs_in_worker_threads(tmp_path, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def _recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(staging_module.asyncio, "to_thread", _recording_to_thread)
    staging = StagingArea(tmp_path)
    payload = b"z" * (CHUNK_SIZE + 1)

    async def _run() -> None:
        async with staging.stage("vid9", make_part(payload), extension="mp4") as staged:
            assert staged.path.read_bytes() == payload

    asyncio.run(_run())
    assert offloaded == ["open", "write", "write", "close"]
