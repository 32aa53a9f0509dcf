"""Tests for ProjectsRepository and SourcesRepository."""

from unittest.mock import AsyncMock

import pytest

from signal_pipeline.sources.repository import ProjectsRepository, SourcesRepository
from tests.conftest import PROJECT_ID, SOURCE_ID


class TestRefreshCandidates:
    @pytest.mark.asyncio
    async def test_derives_last_refresh_from_successful_logs(
        self, mock_database: AsyncMock, project_row: dict
    ) -> None:
        mock_database.fetch.return_value = [project_row]
        repo = ProjectsRepository(mock_database)

        projects = await repo.list_refresh_candidates()

        assert projects[0].id == PROJECT_ID
        assert projects[0].refresh_interval_hours == 8
        assert projects[0].last_refresh_at == project_row["last_refresh_at"]

        sql = mock_database.fetch.call_args[0][0]
        assert "MAX(l.completed_at) AS last_refresh_at" in sql
        assert "l.status = 'success'" in sql
        assert "JOIN sources s ON s.project_id = p.id AND s.is_active = TRUE" in sql
        assert "WHERE p.is_active = TRUE" in sql

    @pytest.mark.asyncio
    async def test_never_refreshed(self, mock_database: AsyncMock, project_row: dict) -> None:
        mock_database.fetch.return_value = [{**project_row, "last_refresh_at": None}]
        repo = ProjectsRepository(mock_database)

        projects = await repo.list_refresh_candidates()

        assert projects[0].last_refresh_at is None

    @pytest.mark.asyncio
    async def test_get_by_id_without_refresh_column(
        self, mock_database: AsyncMock, project_row: dict
    ) -> None:
        row = {k: v for k, v in project_row.items() if k != "last_refresh_at"}
        mock_database.fetchrow.return_value = row
        repo = ProjectsRepository(mock_database)

        project = await repo.get_by_id(PROJECT_ID)

        assert project.name == "Chip supply chain"
        assert project.last_refresh_at is None


class TestSourcesListActive:
    @pytest.mark.asyncio
    async def test_all_active(self, mock_database: AsyncMock, source_row: dict) -> None:
        mock_database.fetch.return_value = [source_row]
        repo = SourcesRepository(mock_database)

        sources = await repo.list_active()

        assert sources[0].source_type == "reddit"
        args = mock_database.fetch.call_args[0]
        assert "WHERE is_active = TRUE ORDER BY last_scraped_at ASC NULLS FIRST, created_at" in args[0]
        assert len(args) == 1

    @pytest.mark.asyncio
    async def test_narrowed_and_limited(self, mock_database: AsyncMock) -> None:
        repo = SourcesRepository(mock_database)

        await repo.list_active(source_id=SOURCE_ID, project_id=PROJECT_ID, limit=20)

        args = mock_database.fetch.call_args[0]
        assert "id = $1" in args[0]
        assert "project_id = $2" in args[0]
        assert "ORDER BY last_scraped_at ASC NULLS FIRST" in args[0]
        assert args[0].index("ORDER BY") < args[0].index("LIMIT")
        assert "LIMIT $3" in args[0]
        assert args[1:] == (SOURCE_ID, PROJECT_ID, 20)

    @pytest.mark.asyncio
    async def test_project_only(self, mock_database: AsyncMock) -> None:
        repo = SourcesRepository(mock_database)

        await repo.list_active(project_id=PROJECT_ID)

        args = mock_database.fetch.call_args[0]
        assert "project_id = $1" in args[0]
        assert args[1:] == (PROJECT_ID,)

    @pytest.mark.asyncio
    async def test_touch_last_scraped(self, mock_database: AsyncMock) -> None:
        repo = SourcesRepository(mock_database)

        await repo.touch_last_scraped(SOURCE_ID)

        sql, source_id = mock_database.execute.call_args[0]
        assert "last_scraped_at = NOW()" in sql
        assert source_id == SOURCE_ID
