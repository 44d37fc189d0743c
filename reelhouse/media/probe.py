"""Geometry probing for staged video files via ``ffprobe``."""

from __future__ import annotations

import asyncio
import enum
import json
from pathlib import Path
from typing import Any, Optional

from reelhouse.core.errors import ProbeFailure
from reelhouse.core.logging import get_logger

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
RATIO_TOLERANCE = 0.1


class GeometryClass(str, enum.Enum):
    landscape = "landscape"
    portrait = "portrait"
    other = "other"


def classify_dimensions(width: int, height: int) -> GeometryClass:
    """Bucket a frame size by aspect ratio.

    Landscape is tested before portrait so the result stays deterministic
    should the tolerance windows ever overlap.
    """
    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE:
        return GeometryClass.landscape
    if abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE:
        return GeometryClass.portrait
    return GeometryClass.other


def build_probe_command(binary: str, target: Path) -> list[str]:
    return [
        binary,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height",
        "-of",
        "json",
        str(target),
    ]


def _as_dimension(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if number > 0 else None


def parse_dimensions(stdout: str) -> tuple[int, int]:
    """Extract ``(width, height)`` of the first stream from ffprobe JSON output."""
    try:
        payload = json.loads(stdout)
    except ValueError as exc:
        raise ProbeFailure("probe_output_invalid", detail=stdout[:500]) from exc

    streams = payload.get("streams") if isinstance(payload, dict) else None
    if not streams or not isinstance(streams[0], dict):
        raise ProbeFailure("no_video_stream", detail=stdout[:500])

    stream = streams[0]
    width = _as_dimension(stream.get("width"))
    height = _as_dimension(stream.get("height"))
    if width is None or height is None:
        raise ProbeFailure("dimensions_unavailable", detail=stream)
    return width, height


class GeometryProbe:
    def __init__(self, binary: str = "ffprobe", timeout_s: float = 30.0):
        self.binary = binary
        self.timeout_s = timeout_s
        self.logger = get_logger(component="geometry_probe")

    async def dimensions(self, target: Path) -> tuple[int, int]:
        command = build_probe_command(self.binary, target)
        self.logger.info("ffprobe_run", command=command)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ProbeFailure("probe_unavailable", detail=str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError as exc:
            await self._terminate(proc)
            self.logger.error("ffprobe_timeout", timeout_s=self.timeout_s, path=str(target))
            raise ProbeFailure("probe_timeout", detail=f"ffprobe exceeded {self.timeout_s}s") from exc
        except asyncio.CancelledError:
            await self._terminate(proc)
            raise

        if proc.returncode != 0:
            diagnostics = stderr.decode("utf-8", errors="replace").strip()
            self.logger.error("ffprobe_failed", exit_code=proc.returncode, stderr=diagnostics)
            raise ProbeFailure(detail={"exit_code": proc.returncode, "stderr": diagnostics})

        return parse_dimensions(stdout.decode("utf-8", errors="replace"))

    async def probe(self, target: Path) -> GeometryClass:
        width, height = await self.dimensions(target)
        geometry = classify_dimensions(width, height)
        self.logger.info("ffprobe_classified", width=width, height=height, geometry=geometry.value)
        return geometry

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


__all__ = [
    "GeometryClass",
    "GeometryProbe",
    "build_probe_command",
    "classify_dimensions",
    "parse_dimensions",
]
