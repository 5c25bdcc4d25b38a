"""
FastAPI application entry point.

Run with: uvicorn troubleshooter.main:app --reload
"""

import asyncio
from contextlib import asynccontextmanager, suppress
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from troubleshooter import __version__
from troubleshooter.core.config import settings
from troubleshooter.core.logging import configure_logging, get_logger, bind_context, clear_context
from troubleshooter.persistence.database import init_database
from troubleshooter.api.dependencies import get_graph_cache
from troubleshooter.api.routes import admin, connections, health, issues, nodes, troubleshoot
from troubleshooter.api.exception_handlers import setup_exception_handlers

# Configure logging before anything else
configure_logging()
log = get_logger(__name__)


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique correlation ID to each request.

    - Reuses an incoming X-Request-ID header or generates a UUID4
    - Binds it to structlog context for all logs in that request
    - Adds X-Request-ID header to responses
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


# =============================================================================
# Background cache sweep
# =============================================================================


async def sweep_graph_cache(interval_seconds: int) -> None:
    """Periodically drop expired snapshot cache entries."""
    cache = get_graph_cache()
    while True:
        await asyncio.sleep(interval_seconds)
        removed = cache.cleanup()
        if removed:
            log.info("graph_cache_swept", removed=removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    log.info(
        "application_starting",
        debug=settings.debug,
        database_path=str(settings.database_path),
    )

    await init_database()

    sweeper = None
    if settings.cache_cleanup_interval_seconds > 0:
        sweeper = asyncio.create_task(
            sweep_graph_cache(settings.cache_cleanup_interval_seconds)
        )

    log.info("application_started")

    yield

    # Shutdown
    log.info("application_shutting_down")
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


# Create FastAPI application
app = FastAPI(
    title="Troubleshooter",
    description="Decision-graph troubleshooting service for field technicians",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Correlation ID middleware (added after CORS, before exception handlers)
app.add_middleware(CorrelationIDMiddleware)

# Setup exception handlers
setup_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["system"])
app.include_router(troubleshoot.router)
app.include_router(issues.router)
app.include_router(nodes.router)
app.include_router(connections.router)
app.include_router(admin.router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "Troubleshooter", "version": __version__, "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "troubleshooter.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
