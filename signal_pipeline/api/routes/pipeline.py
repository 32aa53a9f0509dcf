"""Trigger endpoints for scraping, scheduled refresh and signal passes."""

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from signal_pipeline.api.dependencies import get_pipeline
from signal_pipeline.api.models import LookbackRequest, ScrapeRequest
from signal_pipeline.scheduler.service import RefreshSummary
from signal_pipeline.services.pipeline import Pipeline
from signal_pipeline.services.scrape_service import ScrapeSummary
from signal_pipeline.signals.schemas import DetectionSummary, MomentumSummary

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/scrape",
    response_model=ScrapeSummary,
    summary="Scrape sources",
    description="Scrape all active sources, or a single source when source_id is given.",
)
async def scrape(
    request: ScrapeRequest | None = None,
    pipeline: Pipeline = Depends(get_pipeline),
) -> ScrapeSummary:
    source_id = str(request.source_id) if request and request.source_id else None
    if source_id is not None:
        source = await pipeline.sources.get_by_id(source_id)
        if source is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Source {source_id} not found",
            )
    return await pipeline.run_scrape(source_id=source_id)


@router.post(
    "/refresh",
    response_model=RefreshSummary,
    summary="Scheduled refresh",
    description="Refresh every project whose interval has elapsed.",
)
async def refresh(pipeline: Pipeline = Depends(get_pipeline)) -> RefreshSummary:
    return await pipeline.run_scheduled_refresh()


@router.post(
    "/projects/{project_id}/detect",
    response_model=DetectionSummary,
    summary="Detect signals",
    description="Run signal detection over a project's pending ingestions.",
)
async def detect(
    project_id: uuid.UUID,
    request: LookbackRequest | None = None,
    pipeline: Pipeline = Depends(get_pipeline),
) -> DetectionSummary:
    return await pipeline.detect_signals(
        str(project_id), request.lookback_hours if request else None
    )


@router.post(
    "/projects/{project_id}/momentum",
    response_model=MomentumSummary,
    summary="Analyze momentum",
    description="Re-evaluate a project's open signals against recent ingestions.",
)
async def momentum(
    project_id: uuid.UUID,
    request: LookbackRequest | None = None,
    pipeline: Pipeline = Depends(get_pipeline),
) -> MomentumSummary:
    return await pipeline.analyze_momentum(
        str(project_id), request.lookback_hours if request else None
    )
