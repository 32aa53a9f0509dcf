"""Database repository for the raw_ingestions table."""

import json
import logging
from datetime import datetime
from typing import Any

from signal_pipeline.ingestion.schemas import IngestionStatus, RawIngestion
from signal_pipeline.storage.database import Database, load_jsonb

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS raw_ingestions (
    id                UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    source_id         UUID NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    project_id        UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    content           TEXT NOT NULL,
    content_hash      TEXT NOT NULL,
    url               TEXT NOT NULL,
    word_count        INTEGER NOT NULL,
    extraction_method TEXT NOT NULL,
    status            TEXT NOT NULL DEFAULT 'pending_analysis'
        CHECK (status IN ('pending_analysis', 'analyzed', 'analysis_failed')),
    scraped_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    analyzed_at       TIMESTAMPTZ,
    error_message     TEXT,
    metadata          JSONB NOT NULL DEFAULT '{}'
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_raw_ingestions_content_hash
    ON raw_ingestions(content_hash);
CREATE INDEX IF NOT EXISTS idx_raw_ingestions_project_scraped
    ON raw_ingestions(project_id, scraped_at DESC);
CREATE INDEX IF NOT EXISTS idx_raw_ingestions_pending
    ON raw_ingestions(scraped_at) WHERE status = 'pending_analysis';
"""

# The unique hash index makes concurrent inserts of the same content safe:
# exactly one writer gets an id back, the rest get no row.
_INSERT_SQL = """
INSERT INTO raw_ingestions (
    source_id, project_id, content, content_hash, url,
    word_count, extraction_method, metadata
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
ON CONFLICT (content_hash) DO NOTHING
RETURNING id
"""

_FINISH_SQL = """
UPDATE raw_ingestions
SET status = $2, analyzed_at = NOW(), error_message = $3
WHERE id = $1 AND status = 'pending_analysis'
"""

_SELECT_WITH_SOURCE = """
SELECT r.*, s.source_type
FROM raw_ingestions r
LEFT JOIN sources s ON s.id = r.source_id
"""


def _record_to_ingestion(record) -> RawIngestion:
    """Convert an asyncpg Record to a RawIngestion dataclass."""
    return RawIngestion(
        id=str(record["id"]),
        source_id=str(record["source_id"]),
        project_id=str(record["project_id"]),
        content=record["content"],
        content_hash=record["content_hash"],
        url=record["url"],
        word_count=record["word_count"],
        extraction_method=record["extraction_method"],
        status=IngestionStatus(record["status"]),
        scraped_at=record["scraped_at"],
        analyzed_at=record["analyzed_at"],
        error_message=record["error_message"],
        metadata=load_jsonb(record["metadata"]),
        source_type=record.get("source_type"),
    )


def _updated(status: str) -> bool:
    # asyncpg returns "UPDATE <n>"
    return status.split()[-1] != "0"


class IngestionRepository:
    """Persistence for raw ingestions and their status transitions."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the raw_ingestions table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Raw ingestions table ensured")

    async def insert_if_new(
        self,
        source_id: str,
        project_id: str,
        content: str,
        content_hash: str,
        url: str,
        word_count: int,
        extraction_method: str,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Insert a row unless its content hash already exists.

        Returns:
            The new row id, or None if the hash was already stored
        """
        row_id = await self._db.fetchval(
            _INSERT_SQL,
            source_id,
            project_id,
            content,
            content_hash,
            url,
            word_count,
            extraction_method,
            json.dumps(metadata or {}),
        )
        return str(row_id) if row_id is not None else None

    async def get_by_id(self, ingestion_id: str) -> RawIngestion | None:
        row = await self._db.fetchrow(
            _SELECT_WITH_SOURCE + "WHERE r.id = $1", ingestion_id
        )
        return _record_to_ingestion(row) if row else None

    async def mark_analyzed(self, ingestion_id: str) -> bool:
        """Move a pending ingestion to analyzed. False if it was not pending."""
        status = await self._db.execute(
            _FINISH_SQL, ingestion_id, IngestionStatus.ANALYZED.value, None
        )
        return _updated(status)

    async def mark_failed(self, ingestion_id: str, error: str) -> bool:
        """Move a pending ingestion to analysis_failed. False if it was not pending."""
        status = await self._db.execute(
            _FINISH_SQL, ingestion_id, IngestionStatus.ANALYSIS_FAILED.value, error
        )
        return _updated(status)

    async def list_pending(
        self, project_id: str, since: datetime, limit: int = 100
    ) -> list[RawIngestion]:
        """Pending ingestions of a project scraped since ``since``, newest first."""
        rows = await self._db.fetch(
            _SELECT_WITH_SOURCE
            + """WHERE r.project_id = $1 AND r.status = 'pending_analysis'
                 AND r.scraped_at >= $2
               ORDER BY r.scraped_at DESC LIMIT $3""",
            project_id,
            since,
            limit,
        )
        return [_record_to_ingestion(r) for r in rows]

    async def list_recent(
        self, project_id: str, since: datetime, limit: int = 100
    ) -> list[RawIngestion]:
        """All ingestions of a project scraped since ``since``, newest first."""
        rows = await self._db.fetch(
            _SELECT_WITH_SOURCE
            + """WHERE r.project_id = $1 AND r.scraped_at >= $2
               ORDER BY r.scraped_at DESC LIMIT $3""",
            project_id,
            since,
            limit,
        )
        return [_record_to_ingestion(r) for r in rows]

    async def list_stuck(self, older_than: datetime, limit: int = 20) -> list[RawIngestion]:
        """Ingestions still pending analysis that were scraped before ``older_than``."""
        rows = await self._db.fetch(
            _SELECT_WITH_SOURCE
            + """WHERE r.status = 'pending_analysis' AND r.scraped_at < $1
               ORDER BY r.scraped_at ASC LIMIT $2""",
            older_than,
            limit,
        )
        return [_record_to_ingestion(r) for r in rows]

    async def count_stuck(self, older_than: datetime) -> int:
        count = await self._db.fetchval(
            """SELECT COUNT(*) FROM raw_ingestions
               WHERE status = 'pending_analysis' AND scraped_at < $1""",
            older_than,
        )
        return int(count or 0)
