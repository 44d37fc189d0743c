from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from reelhouse.core.errors import SizeExceeded, StagingFailure
from reelhouse.core.logging import get_logger

from .validator import FilePart

CHUNK_SIZE = 1024 * 1024


@dataclass(slots=True)
class StagedFile:
    path: Path
    content_type: str
    size_bytes: int


class StagingArea:
    """Scratch space where uploads live while the pipeline works on them.

    Files are named ``{record_id}.{extension}`` so uploads for different
    records never collide. Two uploads for the same record share a path and
    the last writer wins.
    """

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger(component="staging_area")

    def path_for(self, record_id: str, extension: str) -> Path:
        name = f"{record_id}.{extension}"
        if Path(name).name != name or record_id in {"", ".", ".."}:
            raise ValueError(f"invalid staging name: {name!r}")
        return self.root / name

    @asynccontextmanager
    async def stage(
        self,
        record_id: str,
        part: FilePart,
        *,
        extension: str,
        max_bytes: Optional[int] = None,
    ) -> AsyncIterator[StagedFile]:
        path = self.path_for(record_id, extension)
        try:
            size = await self._write(path, part, max_bytes)
            self.logger.info("upload_staged", path=str(path), size_bytes=size)
            yield StagedFile(path=path, content_type=part.content_type, size_bytes=size)
        finally:
            self.release(path)

    async def _write(self, path: Path, part: FilePart, max_bytes: Optional[int]) -> int:
        written = 0
        try:
            handle = await asyncio.to_thread(path.open, "wb")
            try:
                while True:
                    chunk = await part.stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise SizeExceeded(detail=f"{part.field} exceeds {max_bytes} bytes")
                    await asyncio.to_thread(handle.write, chunk)
            finally:
                await asyncio.to_thread(handle.close)
        except OSError as exc:
            self.logger.error("upload_staging_failed", path=str(path), error=str(exc))
            raise StagingFailure(detail=str(exc)) from exc
        return written

    def release(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as cleanup_error:
            self.logger.warning("staged_file_cleanup_failed", path=str(path), error=str(cleanup_error))
            return
        self.logger.info("staged_file_released", path=str(path))


__all__ = ["CHUNK_SIZE", "StagedFile", "StagingArea"]
