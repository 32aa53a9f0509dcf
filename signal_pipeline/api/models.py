"""
Request and response models for the trigger API.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from signal_pipeline.ingestion.schemas import RawIngestion


class ScrapeRequest(BaseModel):
    """Request model for a scrape run."""

    source_id: uuid.UUID | None = Field(
        default=None,
        description="Scrape only this source; all active sources when omitted",
    )


class LookbackRequest(BaseModel):
    """Optional window override for detection and momentum passes."""

    lookback_hours: int | None = Field(
        default=None,
        ge=1,
        le=24 * 30,
        description="Hours of ingestions to consider",
    )


class ComponentHealth(BaseModel):
    """Health status for a single infrastructure component."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency in ms")
    details: dict | None = Field(default=None, description="Additional details")


class HealthResponse(BaseModel):
    """Response model for the service health check."""

    status: str = Field(..., description="healthy, degraded or unhealthy")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    extraction_configured: dict[str, bool] = Field(default_factory=dict)
    detector_configured: bool = False
    version: str


class StuckIngestionItem(BaseModel):
    id: str
    source_id: str
    project_id: str
    url: str
    word_count: int
    extraction_method: str
    scraped_at: datetime | None = None

    @classmethod
    def from_ingestion(cls, ingestion: RawIngestion) -> "StuckIngestionItem":
        return cls(
            id=ingestion.id,
            source_id=ingestion.source_id,
            project_id=ingestion.project_id,
            url=ingestion.url,
            word_count=ingestion.word_count,
            scraped_at=ingestion.scraped_at,
            extraction_method=ingestion.extraction_method,
        )


class StuckIngestionsResponse(BaseModel):
    total: int
    threshold_minutes: int
    ingestions: list[StuckIngestionItem]
