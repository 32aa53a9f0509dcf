"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from signal_pipeline.api.app import create_app
from signal_pipeline.api.dependencies import get_database, get_pipeline


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_pipeline() -> MagicMock:
    """Pipeline facade with configured clients and no-op operations."""
    pipeline = MagicMock()
    pipeline.llm.is_configured = True
    pipeline.tavily.is_configured = True
    pipeline.apify.is_configured = False
    pipeline.monitor.stuck_after_minutes = 30
    pipeline.sources.get_by_id = AsyncMock(return_value=None)
    pipeline.run_scrape = AsyncMock()
    pipeline.run_scheduled_refresh = AsyncMock()
    pipeline.detect_signals = AsyncMock()
    pipeline.analyze_momentum = AsyncMock()
    pipeline.health = AsyncMock()
    pipeline.stuck_ingestions = AsyncMock(return_value=[])
    return pipeline


@pytest.fixture
def app(mock_db, mock_pipeline):
    app = create_app()
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_pipeline] = lambda: mock_pipeline
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
