"""
Deduplicating ingestion store.

Content is identified by the sha256 of its exact text. Uniqueness is
enforced by the database across all projects and sources, so the same text
scraped twice (by retried, overlapping or concurrent runs) is stored once.
"""

import hashlib
import logging
from typing import Any

from signal_pipeline.extraction.schemas import ContentItem
from signal_pipeline.ingestion.repository import IngestionRepository
from signal_pipeline.ingestion.schemas import InsertOutcome, InsertResult
from signal_pipeline.observability.metrics import get_metrics
from signal_pipeline.sources.schemas import Source

logger = logging.getLogger(__name__)

# Items at or below this many words are noise, not content
MIN_WORD_COUNT = 100


def content_hash(content: str) -> str:
    """Hex sha256 digest of the UTF-8 encoded text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class IngestionStore:
    """Idempotent insert of extracted content items."""

    def __init__(self, repository: IngestionRepository, min_word_count: int = MIN_WORD_COUNT):
        self._repo = repository
        self._min_word_count = min_word_count

    def accepts(self, word_count: int) -> bool:
        return word_count > self._min_word_count

    async def insert(
        self,
        content: str,
        source: Source,
        url: str,
        word_count: int,
        method: str,
        metadata: dict[str, Any] | None = None,
    ) -> InsertResult:
        """
        Store content unless it is too short or already stored.

        Args:
            content: Extracted text
            source: Source the text came from (gives the project reference)
            url: URL of the specific item
            word_count: Word count of ``content``
            method: Extraction method label
            metadata: Free-form item metadata

        Returns:
            InsertResult with outcome inserted, duplicate or rejected
        """
        metrics = get_metrics()

        if not self.accepts(word_count):
            metrics.record_ingestion(InsertOutcome.REJECTED.value)
            return InsertResult(outcome=InsertOutcome.REJECTED)

        digest = content_hash(content)
        ingestion_id = await self._repo.insert_if_new(
            source_id=source.id,
            project_id=source.project_id,
            content=content,
            content_hash=digest,
            url=url,
            word_count=word_count,
            extraction_method=method,
            metadata=metadata,
        )

        if ingestion_id is None:
            logger.debug(f"Duplicate content {digest[:12]} from {url}")
            metrics.record_ingestion(InsertOutcome.DUPLICATE.value)
            return InsertResult(outcome=InsertOutcome.DUPLICATE, content_hash=digest)

        metrics.record_ingestion(InsertOutcome.INSERTED.value)
        return InsertResult(
            outcome=InsertOutcome.INSERTED, ingestion_id=ingestion_id, content_hash=digest
        )

    async def insert_item(self, item: ContentItem, source: Source) -> InsertResult:
        """Insert an extracted ContentItem."""
        method = getattr(item.method, "value", item.method)
        return await self.insert(
            content=item.content,
            source=source,
            url=item.url,
            word_count=item.word_count,
            method=method,
            metadata=item.metadata,
        )
