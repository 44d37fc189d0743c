import asyncio
import io
import shutil
import subprocess
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

from reelhouse.core.config import get_settings
from reelhouse.core.db import Base, create_engine, create_schema
from reelhouse.main import create_app
from reelhouse.media import FilePart


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default reelhouse environment bootstrap fixture for tests that manage their own .env",
    )


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()
        return
    db_path = tmp_path / "reelhouse_test.db"

    monkeypatch.setenv("REELHOUSE_ENV", "test")
    monkeypatch.setenv("REELHOUSE_LOG_LEVEL", "debug")
    monkeypatch.setenv("REELHOUSE_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("REELHOUSE_ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("REELHOUSE_STAGING_ROOT", str(tmp_path / "staging"))
    monkeypatch.setenv("REELHOUSE_CONTENT_STORE_BACKEND", "local")
    monkeypatch.setenv("REELHOUSE_LOCAL_STORE_ROOT", str(tmp_path / "media"))
    monkeypatch.setenv("REELHOUSE_JWT_SECRET", "test-secret")
    monkeypatch.setenv("REELHOUSE_JWT_ISSUER", "reelhouse-test")
    monkeypatch.setenv("REELHOUSE_JWT_AUDIENCE", "reelhouse")
    monkeypatch.delenv("REELHOUSE_CDN_DOMAIN", raising=False)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        await create_schema(engine)

    asyncio.run(_setup())

    yield

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


@pytest.fixture()
def client(configure_environment):
    app = create_app()
    with TestClient(app) as client:
        yield client


def build_token(user_id: str | None, *, scopes: list[str] | None = None) -> str:
    payload: dict[str, object] = {"iss": "reelhouse-test", "aud": "reelhouse"}
    if user_id:
        payload["sub"] = user_id
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def auth_headers(user_id: str, *, scopes: list[str] | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token(user_id, scopes=scopes)}"}


@pytest.fixture()
def alice_headers() -> dict[str, str]:
    return auth_headers("user-alice")


@pytest.fixture()
def bob_headers() -> dict[str, str]:
    return auth_headers("user-bob")


class AsyncBytes:
    """Minimal async byte stream standing in for an uploaded file."""

    def __init__(self, payload: bytes):
        self._buffer = io.BytesIO(payload)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


def make_part(
    payload: bytes = b"data",
    *,
    field: str = "video",
    content_type: str = "video/mp4",
    size: int | None = None,
) -> FilePart:
    return FilePart(
        field=field,
        content_type=content_type,
        size=len(payload) if size is None else size,
        stream=AsyncBytes(payload),
    )


def write_fake_ffprobe(
    directory: Path,
    *,
    stdout: str = "",
    stderr: str = "",
    exit_code: int = 0,
    sleep_s: float = 0,
    pid_file: Path | None = None,
) -> Path:
    """Write an executable that mimics ffprobe's observable contract."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "stdout.txt").write_text(stdout)
    (directory / "stderr.txt").write_text(stderr)
    script = directory / "ffprobe"
    lines = ["#!/bin/sh"]
    if pid_file is not None:
        lines.append(f'echo $$ > "{pid_file}"')
    if sleep_s:
        lines.append(f"exec sleep {sleep_s}")
    lines += [
        f'cat "{directory / "stdout.txt"}"',
        f'cat "{directory / "stderr.txt"}" >&2',
        f"exit {exit_code}",
    ]
    script.write_text("\n".join(lines) + "\n")
    script.chmod(0o755)
    return script


def dimensions_json(width, height) -> str:
    return '{"programs": [], "streams": [{"width": %s, "height": %s}]}' % (width, height)


@pytest.fixture(scope="session")
def landscape_video_file(tmp_path_factory) -> Path:
    """Generates a small 1920x1080 MP4 for end-to-end tests."""
    if shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None:
        pytest.skip("ffmpeg is not installed")
    video_path = tmp_path_factory.mktemp("data") / "landscape.mp4"
    command = [
        "ffmpeg",
        "-f", "lavfi",
        "-i", "color=c=black:s=1920x1080:r=30",
        "-t", "1",
        "-pix_fmt", "yuv420p",
        str(video_path),
    ]
    subprocess.run(command, check=True, capture_output=True)
    return video_path
