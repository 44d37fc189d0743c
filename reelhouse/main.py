from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from reelhouse.api.v1 import get_api_router
from reelhouse.api.v1.schemas import ErrorResponse
from reelhouse.core.config import Settings, get_settings
from reelhouse.core.db import create_engine, create_session_factory
from reelhouse.core.errors import ReelhouseError, SizeExceeded
from reelhouse.core.logging import configure_logging, get_logger
from reelhouse.core.storage import LocalContentStore, get_content_store


async def handle_reelhouse_error(request: Request, exc: ReelhouseError) -> JSONResponse:
    logger = get_logger(component="api")
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_failed", path=request.url.path, error=exc.code, detail=exc.detail, status_code=exc.status_code)
    payload = ErrorResponse(error=exc.code, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump(mode="json"))


# multipart boundaries and part headers on top of the file bytes
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def _upload_ceiling(request: Request, settings: Settings) -> int | None:
    if request.method != "POST":
        return None
    path = request.url.path
    if path.endswith("/thumbnail"):
        return settings.max_thumbnail_bytes
    if path.endswith("/upload"):
        return settings.max_video_bytes
    return None


def create_app() -> FastAPI:
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    configure_logging(level=log_level)
    content_store = get_content_store(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.content_store = content_store
        app.state.engine = engine
        app.state.session_factory = session_factory
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    app.add_exception_handler(ReelhouseError, handle_reelhouse_error)

    @app.middleware("http")
    async def reject_oversized_uploads(request: Request, call_next):
        # runs before the multipart body is spooled to disk
        ceiling = _upload_ceiling(request, settings)
        declared = request.headers.get("content-length", "")
        if ceiling is not None and declared.isdigit() and int(declared) > ceiling + MULTIPART_OVERHEAD_BYTES:
            return await handle_reelhouse_error(request, SizeExceeded(detail=f"request body exceeds {ceiling} bytes"))
        return await call_next(request)

    app.include_router(get_api_router())

    assets_root = Path(settings.assets_root)
    assets_root.mkdir(parents=True, exist_ok=True)
    app.mount(settings.assets_url_prefix, StaticFiles(directory=assets_root), name="assets")
    if isinstance(content_store, LocalContentStore):
        app.mount(
            content_store.url_prefix,
            StaticFiles(directory=content_store.base_path),
            name="media",
        )
    return app


__all__ = ["create_app", "handle_reelhouse_error"]
