"""
Health endpoints: service infrastructure and pipeline execution health.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from signal_pipeline import __version__
from signal_pipeline.api.dependencies import get_database, get_pipeline
from signal_pipeline.api.models import (
    ComponentHealth,
    HealthResponse,
    StuckIngestionItem,
    StuckIngestionsResponse,
)
from signal_pipeline.scheduler.health import PipelineHealth
from signal_pipeline.services.pipeline import Pipeline
from signal_pipeline.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    healthy = await db.health_check()
    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round(latency_ms, 2),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check database connectivity and which external services are configured.",
)
async def health_check(
    db: Database = Depends(get_database),
    pipeline: Pipeline = Depends(get_pipeline),
) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: the signal detector is not configured
    - healthy: otherwise
    """
    db_health = await _check_database(db)
    detector_configured = pipeline.llm.is_configured

    if db_health.status == "unhealthy":
        status = "unhealthy"
    elif not detector_configured:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        components={"database": db_health},
        extraction_configured={
            "primary": pipeline.tavily.is_configured,
            "secondary": pipeline.apify.is_configured,
        },
        detector_configured=detector_configured,
        version=__version__,
    )


@router.get(
    "/health/pipeline",
    response_model=PipelineHealth,
    summary="Pipeline health",
    description="Classify pipeline health from recorded execution logs.",
)
async def pipeline_health(pipeline: Pipeline = Depends(get_pipeline)) -> PipelineHealth:
    return await pipeline.health()


@router.get(
    "/ingestions/stuck",
    response_model=StuckIngestionsResponse,
    summary="Stuck ingestions",
    description="Ingestions still pending analysis past the stuck threshold.",
)
async def stuck_ingestions(
    pipeline: Pipeline = Depends(get_pipeline),
) -> StuckIngestionsResponse:
    stuck = await pipeline.stuck_ingestions()
    return StuckIngestionsResponse(
        total=len(stuck),
        threshold_minutes=pipeline.monitor.stuck_after_minutes,
        ingestions=[StuckIngestionItem.from_ingestion(i) for i in stuck],
    )
