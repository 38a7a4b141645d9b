from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI
from sqlalchemy.engine import Engine

from guestbook import __version__
from guestbook.api.entries import router as entries_router
from guestbook.api.metrics import router as metrics_router
from guestbook.api.pages import router as pages_router
from guestbook.config import Settings, get_settings
from guestbook.db.session import Database, build_engine
from guestbook.errors import DatabaseUnavailableError
from guestbook.observability.logging import configure_logging
from guestbook.observability.metrics import HttpMetrics
from guestbook.observability.middleware import RequestContextMiddleware


def handle_unhandled_error(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Log failures that escape every handler; the process keeps running."""

    _ = loop
    exc = context.get("exception")
    structlog.get_logger("asyncio").warning(
        "asyncio.unhandled_error",
        message=context.get("message"),
        error=str(exc) if exc is not None else None,
        exc_info=exc,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    _ = app
    asyncio.get_running_loop().set_exception_handler(handle_unhandled_error)
    yield


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    metrics: HttpMetrics | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    if metrics is None:
        metrics = HttpMetrics(prefix=settings.metrics_prefix)

    app = FastAPI(title="Guestbook", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = Database(engine if engine is not None else build_engine(settings))
    app.state.metrics = metrics

    app.add_middleware(RequestContextMiddleware, metrics=metrics)
    app.include_router(pages_router)
    app.include_router(entries_router)
    app.include_router(metrics_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def serve(settings: Settings) -> None:
    configure_logging(settings.log_level)
    logger = structlog.get_logger("guestbook")

    try:
        app = create_app(settings)
        app.state.database.verify()
    except DatabaseUnavailableError as exc:
        logger.critical("database.init_failed", error=str(exc), exc_info=True)
        raise SystemExit(1) from exc

    logger.info("server.starting", url=f"http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
