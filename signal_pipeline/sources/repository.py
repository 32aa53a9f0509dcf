"""Database repositories for the projects and sources tables."""

import logging

from signal_pipeline.sources.schemas import Project, Source
from signal_pipeline.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id                     UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name                   TEXT NOT NULL DEFAULT '',
    is_active              BOOLEAN NOT NULL DEFAULT TRUE,
    refresh_interval_hours INTEGER NOT NULL DEFAULT 4,
    signal_instructions    TEXT,
    created_at             TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS sources (
    id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    project_id      UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    url             TEXT NOT NULL,
    name            TEXT NOT NULL DEFAULT '',
    source_type     TEXT NOT NULL DEFAULT 'article',
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    last_scraped_at TIMESTAMPTZ,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_sources_project_active
    ON sources(project_id) WHERE is_active = TRUE;
"""

# Most recent successful scrape across a project's active sources
_REFRESH_CANDIDATES_SQL = """
SELECT p.id, p.name, p.is_active, p.refresh_interval_hours,
       p.signal_instructions, p.created_at,
       MAX(l.completed_at) AS last_refresh_at
FROM projects p
JOIN sources s ON s.project_id = p.id AND s.is_active = TRUE
LEFT JOIN scraper_logs l ON l.source_id = s.id AND l.status = 'success'
WHERE p.is_active = TRUE
GROUP BY p.id
"""

_SOURCE_COLUMNS = (
    "id, project_id, url, name, source_type, is_active, last_scraped_at, created_at"
)


def _record_to_project(record) -> Project:
    """Convert an asyncpg Record to a Project dataclass."""
    return Project(
        id=str(record["id"]),
        name=record["name"],
        is_active=record["is_active"],
        refresh_interval_hours=record["refresh_interval_hours"],
        signal_instructions=record.get("signal_instructions"),
        created_at=record["created_at"],
        last_refresh_at=record.get("last_refresh_at"),
    )


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        id=str(record["id"]),
        project_id=str(record["project_id"]),
        url=record["url"],
        name=record["name"],
        source_type=record["source_type"],
        is_active=record["is_active"],
        last_scraped_at=record["last_scraped_at"],
        created_at=record["created_at"],
    )


class ProjectsRepository:
    """Read access to projects plus their refresh bookkeeping."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the projects and sources tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Projects and sources tables ensured")

    async def get_by_id(self, project_id: str) -> Project | None:
        row = await self._db.fetchrow(
            "SELECT * FROM projects WHERE id = $1", project_id
        )
        return _record_to_project(row) if row else None

    async def list_active(self) -> list[Project]:
        rows = await self._db.fetch(
            "SELECT * FROM projects WHERE is_active = TRUE ORDER BY created_at"
        )
        return [_record_to_project(r) for r in rows]

    async def list_refresh_candidates(self) -> list[Project]:
        """Active projects with at least one active source.

        Each project carries ``last_refresh_at`` derived from the newest
        successful execution log of its sources (None if never refreshed).
        """
        rows = await self._db.fetch(_REFRESH_CANDIDATES_SQL)
        return [_record_to_project(r) for r in rows]


class SourcesRepository:
    """Read access to sources; the pipeline only writes ``last_scraped_at``."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_by_id(self, source_id: str) -> Source | None:
        row = await self._db.fetchrow(
            f"SELECT {_SOURCE_COLUMNS} FROM sources WHERE id = $1", source_id
        )
        return _record_to_source(row) if row else None

    async def list_active(
        self,
        source_id: str | None = None,
        project_id: str | None = None,
        limit: int | None = None,
    ) -> list[Source]:
        """List active sources, optionally narrowed to one source or project.

        Least recently scraped sources come first, so a capped run rotates
        through the whole set instead of revisiting the oldest rows.
        """
        conditions = ["is_active = TRUE"]
        params: list = []
        idx = 1

        if source_id is not None:
            conditions.append(f"id = ${idx}")
            params.append(source_id)
            idx += 1

        if project_id is not None:
            conditions.append(f"project_id = ${idx}")
            params.append(project_id)
            idx += 1

        query = (
            f"SELECT {_SOURCE_COLUMNS} FROM sources "
            f"WHERE {' AND '.join(conditions)} "
            "ORDER BY last_scraped_at ASC NULLS FIRST, created_at"
        )
        if limit is not None:
            query += f" LIMIT ${idx}"
            params.append(limit)

        rows = await self._db.fetch(query, *params)
        return [_record_to_source(r) for r in rows]

    async def touch_last_scraped(self, source_id: str) -> None:
        await self._db.execute(
            "UPDATE sources SET last_scraped_at = NOW() WHERE id = $1", source_id
        )
