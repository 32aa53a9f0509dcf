"""Shared fixtures for sources tests."""

from datetime import datetime, timezone

import pytest

from tests.conftest import PROJECT_ID, SOURCE_ID


@pytest.fixture
def project_row() -> dict:
    """A dict mimicking an asyncpg Record for a refresh candidate project."""
    return {
        "id": PROJECT_ID,
        "name": "Chip supply chain",
        "is_active": True,
        "refresh_interval_hours": 8,
        "signal_instructions": None,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "last_refresh_at": datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc),
    }


@pytest.fixture
def source_row() -> dict:
    """A dict mimicking an asyncpg Record for a source."""
    return {
        "id": SOURCE_ID,
        "project_id": PROJECT_ID,
        "url": "https://www.reddit.com/r/hardware/",
        "name": "r/hardware",
        "source_type": "reddit",
        "is_active": True,
        "last_scraped_at": None,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
