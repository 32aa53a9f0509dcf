"""Database repository for the scraper_logs table."""

import logging
from datetime import datetime

from signal_pipeline.executions.schemas import ExecutionLog, ExecutionStatus
from signal_pipeline.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS scraper_logs (
    id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    source_id       UUID NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    status          TEXT NOT NULL DEFAULT 'running'
        CHECK (status IN ('running', 'success', 'failed')),
    items_found     INTEGER NOT NULL DEFAULT 0,
    items_processed INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    completed_at    TIMESTAMPTZ,
    duration_ms     INTEGER
);

CREATE INDEX IF NOT EXISTS idx_scraper_logs_source_completed
    ON scraper_logs(source_id, completed_at DESC);
CREATE INDEX IF NOT EXISTS idx_scraper_logs_started
    ON scraper_logs(started_at DESC);
"""

# Only a running log can be finalized, and only once
_FINISH_SQL = """
UPDATE scraper_logs
SET status = $2,
    items_found = $3,
    items_processed = $4,
    error_message = $5,
    completed_at = NOW(),
    duration_ms = $6
WHERE id = $1 AND status = 'running'
"""


def _record_to_log(record) -> ExecutionLog:
    """Convert an asyncpg Record to an ExecutionLog dataclass."""
    return ExecutionLog(
        id=str(record["id"]),
        source_id=str(record["source_id"]),
        status=ExecutionStatus(record["status"]),
        items_found=record["items_found"],
        items_processed=record["items_processed"],
        error_message=record["error_message"],
        started_at=record["started_at"],
        completed_at=record["completed_at"],
        duration_ms=record["duration_ms"],
    )


class ExecutionLogRepository:
    """Write-once progression of scrape execution logs."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Scraper logs table ensured")

    async def start(self, source_id: str) -> str:
        """Create a running log for a source and return its id."""
        log_id = await self._db.fetchval(
            "INSERT INTO scraper_logs (source_id) VALUES ($1) RETURNING id",
            source_id,
        )
        return str(log_id)

    async def finish(
        self,
        log_id: str,
        status: ExecutionStatus,
        items_found: int,
        items_processed: int,
        error_message: str | None,
        duration_ms: int,
    ) -> None:
        """Move a running log to success or failed."""
        if status is ExecutionStatus.RUNNING:
            raise ValueError("An execution log can only be finished as success or failed")

        result = await self._db.execute(
            _FINISH_SQL,
            log_id,
            status.value,
            items_found,
            items_processed,
            error_message,
            duration_ms,
        )
        if result.split()[-1] == "0":
            logger.warning(f"Execution log {log_id} was not running; left unchanged")

    async def latest(self, since: datetime | None = None) -> ExecutionLog | None:
        """Most recently started log, optionally only those started after ``since``."""
        if since is None:
            row = await self._db.fetchrow(
                "SELECT * FROM scraper_logs ORDER BY started_at DESC LIMIT 1"
            )
        else:
            row = await self._db.fetchrow(
                """SELECT * FROM scraper_logs WHERE started_at >= $1
                   ORDER BY started_at DESC LIMIT 1""",
                since,
            )
        return _record_to_log(row) if row else None

    async def last_success_at(self) -> datetime | None:
        return await self._db.fetchval(
            "SELECT MAX(completed_at) FROM scraper_logs WHERE status = 'success'"
        )
