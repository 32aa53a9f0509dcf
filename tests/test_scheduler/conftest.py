"""Shared fixtures for scheduler and health tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from signal_pipeline.scheduler.config import SchedulerConfig
from signal_pipeline.services.scrape_service import ScrapeSummary
from signal_pipeline.signals.schemas import DetectionSummary, MomentumSummary

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    return SchedulerConfig()


@pytest.fixture
def projects_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.list_refresh_candidates = AsyncMock(return_value=[])
    repo.list_active = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def scrape() -> AsyncMock:
    service = AsyncMock()
    service.run = AsyncMock(return_value=ScrapeSummary(scraped=2, new_items=3, duplicates=1))
    return service


@pytest.fixture
def detection() -> AsyncMock:
    service = AsyncMock()

    async def detect_signals(project_id, lookback_hours=None):
        return DetectionSummary(project_id=project_id, ingestions_analyzed=3, signals_detected=2)

    service.detect_signals = AsyncMock(side_effect=detect_signals)
    return service


@pytest.fixture
def momentum() -> AsyncMock:
    service = AsyncMock()

    async def analyze_momentum(project_id, lookback_hours=None, now=None):
        return MomentumSummary(project_id=project_id, signals_analyzed=4, signals_updated=1)

    service.analyze_momentum = AsyncMock(side_effect=analyze_momentum)
    return service
