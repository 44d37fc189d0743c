from __future__ import annotations

import argparse
import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.config import get_settings
from .core.db import create_engine, create_schema
from .core.errors import ProbeFailure
from .core.logging import configure_logging
from .media.keys import video_storage_key
from .media.probe import GeometryProbe, classify_dimensions

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(level=getattr(logging, settings.log_level.upper(), logging.INFO), to_stderr=True)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="reelhouse developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of the ffprobe dependency")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Classify a video's geometry the way uploads do")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.add_argument(
        "--video-id",
        default="example",
        help="Record identifier used to preview the storage key (default 'example').",
    )
    probe_parser.set_defaults(func=_cmd_probe)

    init_parser = subparsers.add_parser("init-db", help="Create database tables for the configured DSN")
    init_parser.set_defaults(func=_cmd_init_db)
    return parser


def _cmd_probe(args: argparse.Namespace) -> None:
    """Run ffprobe against a file and print its dimensions, bucket and key.

    Args:
        args: The command-line arguments.
    """
    media_path = Path(args.file).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)

    settings = get_settings()
    probe = GeometryProbe(binary=settings.ffprobe_binary, timeout_s=settings.probe_timeout_s)
    try:
        width, height = asyncio.run(probe.dimensions(media_path))
    except ProbeFailure as exc:
        console.print(f"[red]ffprobe failed:[/] {exc.code} {exc.detail}")
        sys.exit(3)

    geometry = classify_dimensions(width, height)
    console.print_json(
        data={
            "file": str(media_path),
            "width": width,
            "height": height,
            "geometry": geometry.value,
            "storage_key": video_storage_key(args.video_id, geometry),
        }
    )


def _cmd_init_db(args: argparse.Namespace) -> None:
    settings = get_settings()
    engine = create_engine(settings)

    async def _run() -> None:
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    console.print(f"[green]Schema ready at {settings.database_url}[/]")


def _run_environment_check() -> None:
    """Check for the presence of required external dependencies."""
    settings = get_settings()
    checks = {
        "ffprobe": [settings.ffprobe_binary, "-version"],
    }
    results = {}
    for label, cmd in checks.items():
        try:
            subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
            results[label] = True
        except (OSError, subprocess.CalledProcessError):
            results[label] = False

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg to get ffprobe.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
