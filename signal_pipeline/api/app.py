"""
Trigger API: one POST per pipeline entry point plus health reads.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from signal_pipeline import __version__
from signal_pipeline.api.dependencies import cleanup_dependencies
from signal_pipeline.api.routes import health, pipeline
from signal_pipeline.observability.logging import bind_context, clear_context
from signal_pipeline.storage.database import StoreUnavailableError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the shared pipeline and pool on shutdown."""
    logger.info("Signal pipeline API starting up")
    yield
    logger.info("Signal pipeline API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Build the trigger API with its middleware and error handlers.

    Returns:
        FastAPI app; dependencies are created lazily on first request
    """
    openapi_tags = [
        {"name": "health", "description": "Service and pipeline health"},
        {"name": "pipeline", "description": "Scrape, refresh and signal analysis triggers"},
    ]

    app = FastAPI(
        title="Signal Pipeline API",
        description="""
Trigger API for the content ingestion and signal detection pipeline.

Each endpoint runs its operation to completion and returns the summary.
Per-source and per-item failures are reported in the summary; a lost
database connection returns 503.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # Correlation id per request, echoed back and bound into log context
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Store unavailable: {exc}")
        return JSONResponse(
            status_code=503,
            content={"detail": "Database unavailable", "error_type": "store_unavailable"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Request failed with unhandled error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(pipeline.router, tags=["pipeline"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Signal Pipeline API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
