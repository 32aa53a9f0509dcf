"""Shared fixtures for ingestion tests."""

import asyncio
from datetime import datetime, timezone

import pytest

from signal_pipeline.ingestion.repository import IngestionRepository
from tests.conftest import INGESTION_ID, PROJECT_ID, SOURCE_ID


class InMemoryIngestionRepository(IngestionRepository):
    """Stand-in for the raw_ingestions table with its unique hash index.

    The lock plays the role of the index: concurrent inserts of the same
    hash serialize, and only the first one gets a row id.
    """

    def __init__(self) -> None:
        self.rows: dict[str, dict] = {}
        self._lock = asyncio.Lock()

    async def insert_if_new(self, **kwargs) -> str | None:
        await asyncio.sleep(0)
        async with self._lock:
            if any(r["content_hash"] == kwargs["content_hash"] for r in self.rows.values()):
                return None
            row_id = f"ing-{len(self.rows) + 1}"
            self.rows[row_id] = kwargs
            return row_id


@pytest.fixture
def memory_repo() -> InMemoryIngestionRepository:
    return InMemoryIngestionRepository()


@pytest.fixture
def ingestion_row() -> dict:
    """A dict mimicking an asyncpg Record for a raw ingestion joined with its source."""
    return {
        "id": INGESTION_ID,
        "source_id": SOURCE_ID,
        "project_id": PROJECT_ID,
        "content": "content",
        "content_hash": "ab" * 32,
        "url": "https://news.example.com/fab-expansion",
        "word_count": 150,
        "extraction_method": "secondary",
        "status": "pending_analysis",
        "scraped_at": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        "analyzed_at": None,
        "error_message": None,
        "metadata": '{"primary_error": "Content too short (40 words)"}',
        "source_type": "news",
    }
