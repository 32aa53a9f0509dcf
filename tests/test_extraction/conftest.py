"""Shared fixtures for extraction tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.retry import RetryPolicy


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    return ExtractionConfig()


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    """Three attempts without backoff delays."""
    return RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def mock_tavily() -> MagicMock:
    tavily = MagicMock()
    tavily.is_configured = True
    tavily.extract_batch = AsyncMock(return_value={})
    return tavily


@pytest.fixture
def mock_apify() -> MagicMock:
    apify = MagicMock()
    apify.is_configured = True
    apify.run_actor = AsyncMock(return_value=[])
    return apify


@pytest.fixture
def mock_local() -> MagicMock:
    local = MagicMock()
    local.extract = AsyncMock()
    return local
