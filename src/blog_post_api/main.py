"""FastAPI application entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from blog_post_api.config import Settings
from blog_post_api.errors import register_exception_handlers
from blog_post_api.routes import router as posts_router
from blog_post_api.store import create_post_store
from blog_post_api.telemetry import (
    add_trace_context,
    configure_stdlib_logging,
    init_telemetry,
    shutdown_telemetry,
)

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_trace_context,  # type: ignore[list-item]
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ],
)

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_telemetry()
    settings = Settings()
    configure_stdlib_logging(settings.log_level)
    app.state.settings = settings
    app.state.store = create_post_store(settings.database_url)

    await log.ainfo("service started", store=settings.store_backend)
    yield

    try:
        await app.state.store.aclose()
    finally:
        await log.ainfo("service stopped")
        shutdown_telemetry()


app = FastAPI(title="Blog Post API", version="0.1.0", lifespan=lifespan)
app.include_router(posts_router)
register_exception_handlers(app)
FastAPIInstrumentor.instrument_app(app)


@app.get("/health")
async def health(request: Request) -> dict[str, str]:
    return {"status": "ok", "store": request.app.state.settings.store_backend}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = Settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)
