"""Tests for the deduplicating ingestion store."""

import asyncio
import hashlib
from unittest.mock import AsyncMock

import pytest

from signal_pipeline.extraction.schemas import ContentItem, ExtractionMethod
from signal_pipeline.ingestion.schemas import InsertOutcome
from signal_pipeline.ingestion.store import IngestionStore, content_hash
from tests.conftest import words


class TestContentHash:
    def test_is_sha256_hex(self) -> None:
        assert content_hash("héllo") == hashlib.sha256("héllo".encode("utf-8")).hexdigest()

    def test_exact_text_only(self) -> None:
        assert content_hash("a b") != content_hash("a  b")


class TestWordFloor:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("word_count", [0, 1, 99, 100])
    async def test_at_or_below_floor_is_never_stored(
        self, memory_repo, article_source, word_count: int
    ) -> None:
        store = IngestionStore(memory_repo)

        result = await store.insert(
            words(word_count), article_source, article_source.url, word_count, "primary"
        )

        assert result.outcome == InsertOutcome.REJECTED
        assert result.ingestion_id is None
        assert memory_repo.rows == {}

    @pytest.mark.asyncio
    async def test_above_floor_is_stored(self, memory_repo, article_source) -> None:
        store = IngestionStore(memory_repo)

        result = await store.insert(
            words(101), article_source, article_source.url, 101, "primary"
        )

        assert result.inserted
        row = memory_repo.rows[result.ingestion_id]
        assert row["project_id"] == article_source.project_id
        assert row["word_count"] == 101
        assert row["content_hash"] == content_hash(words(101))

    def test_accepts(self, memory_repo) -> None:
        store = IngestionStore(memory_repo, min_word_count=100)
        assert not store.accepts(100)
        assert store.accepts(101)


class TestIdempotency:
    @pytest.mark.asyncio
    async def test_same_content_twice_stored_once(self, memory_repo, article_source) -> None:
        store = IngestionStore(memory_repo)
        text = words(150)

        first = await store.insert(text, article_source, article_source.url, 150, "primary")
        second = await store.insert(text, article_source, "https://other.example/", 150, "secondary")

        assert first.outcome == InsertOutcome.INSERTED
        assert second.outcome == InsertOutcome.DUPLICATE
        assert second.content_hash == first.content_hash
        assert len(memory_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_concurrent_identical_content(self, memory_repo, article_source) -> None:
        """Two runs extracting the same page at once store one row."""
        store = IngestionStore(memory_repo)
        text = words(150)

        results = await asyncio.gather(
            store.insert(text, article_source, article_source.url, 150, "primary"),
            store.insert(text, article_source, article_source.url, 150, "primary"),
        )

        assert sorted(r.outcome.value for r in results) == ["duplicate", "inserted"]
        assert len(memory_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_duplicate_when_repository_returns_no_row(self, article_source) -> None:
        repo = AsyncMock()
        repo.insert_if_new = AsyncMock(return_value=None)
        store = IngestionStore(repo)

        result = await store.insert(words(150), article_source, article_source.url, 150, "primary")

        assert result.outcome == InsertOutcome.DUPLICATE


class TestInsertItem:
    @pytest.mark.asyncio
    async def test_passes_method_and_metadata(self, memory_repo, article_source) -> None:
        store = IngestionStore(memory_repo)
        item = ContentItem(
            content=words(120),
            url="https://news.example.com/story",
            word_count=120,
            method=ExtractionMethod.LOCAL_FALLBACK,
            metadata={"primary_error": "rate limited"},
        )

        result = await store.insert_item(item, article_source)

        row = memory_repo.rows[result.ingestion_id]
        assert row["extraction_method"] == "local-fallback"
        assert row["url"] == "https://news.example.com/story"
        assert row["metadata"] == {"primary_error": "rate limited"}
