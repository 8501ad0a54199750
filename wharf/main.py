"""Wharf FastAPI application entry point."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from wharf import __version__
from wharf.config import LogConfig, get_settings
from wharf.errors import InternalError, WharfError

logger = structlog.get_logger()


def configure_logging(config: LogConfig) -> None:
    """Configure structlog rendering and level."""
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.log)
    settings.ensure_directories()
    logger.info(
        "wharf.startup",
        version=__version__,
        upload_dir=str(settings.storage.upload_path),
        users=len(settings.security.authorized_users),
    )
    if not settings.security.public_key_dir:
        logger.warning("wharf.no_public_key_dir", msg="Every authentication will fail")

    yield

    logger.info("wharf.shutdown")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="Wharf",
        description="Self-service deployment gateway",
        version=__version__,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-Id"] = request_id
        return response

    @app.exception_handler(WharfError)
    async def wharf_error_handler(request: Request, exc: WharfError):
        """Handle Wharf errors with consistent format."""
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(request_id),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        """Anything unexpected: log it, expose nothing."""
        request_id = getattr(request.state, "request_id", None)
        logger.error("wharf.unhandled_error", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content=InternalError().to_dict(request_id),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    from wharf.api.v1 import router as v1_router

    app.include_router(v1_router, prefix="/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "wharf.main:app",
        host=settings.server.host,
        port=settings.server.port,
    )
