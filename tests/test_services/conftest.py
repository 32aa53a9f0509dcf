"""Fixtures for orchestrator tests: real strategy and store, mocked services."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from signal_pipeline.extraction.article import ArticleStrategy
from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.schemas import PageExtraction, SourceKind
from signal_pipeline.ingestion.schemas import IngestionStatus
from signal_pipeline.ingestion.store import IngestionStore
from signal_pipeline.services.scrape_service import ScrapeService
from signal_pipeline.signals.service import DetectionOutcome
from signal_pipeline.sources.schemas import Source
from tests.conftest import PROJECT_ID, words
from tests.test_ingestion.conftest import InMemoryIngestionRepository


def page(url: str, n_words: int, word: str = "semiconductor") -> PageExtraction:
    return PageExtraction(url=url, success=True, content=words(n_words, word), word_count=n_words)


def article(source_id: str, slug: str) -> Source:
    return Source(
        id=source_id,
        project_id=PROJECT_ID,
        url=f"https://news.example.com/{slug}",
        source_type="news",
    )


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    return ExtractionConfig()


@pytest.fixture
def tavily() -> MagicMock:
    client = MagicMock()
    client.is_configured = True
    client.extract_batch = AsyncMock(return_value={})
    return client


@pytest.fixture
def apify() -> MagicMock:
    client = MagicMock()
    client.is_configured = True
    client.run_actor = AsyncMock(return_value=[])
    return client


@pytest.fixture
def local() -> MagicMock:
    extractor = MagicMock()
    extractor.extract = AsyncMock(
        side_effect=lambda url: PageExtraction.failure(url, "HTTP 403")
    )
    return extractor


@pytest.fixture
def social_strategy() -> MagicMock:
    strategy = MagicMock()
    strategy.kind = SourceKind.SOCIAL_POST
    strategy.extract = AsyncMock(return_value=[])
    return strategy


@pytest.fixture
def forum_strategy() -> MagicMock:
    strategy = MagicMock()
    strategy.kind = SourceKind.FORUM
    strategy.extract = AsyncMock(return_value=[])
    return strategy


@pytest.fixture
def memory_repo() -> InMemoryIngestionRepository:
    return InMemoryIngestionRepository()


@pytest.fixture
def sources_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.list_active = AsyncMock(return_value=[])
    repo.touch_last_scraped = AsyncMock()
    return repo


@pytest.fixture
def projects_repo(sample_project) -> AsyncMock:
    repo = AsyncMock()
    repo.get_by_id = AsyncMock(return_value=sample_project)
    return repo


@pytest.fixture
def logs_repo() -> AsyncMock:
    repo = AsyncMock()
    started: list[str] = []

    async def start(source_id: str) -> str:
        started.append(source_id)
        return f"log-{source_id}"

    repo.start = AsyncMock(side_effect=start)
    repo.finish = AsyncMock()
    repo.started = started
    return repo


@pytest.fixture
def detector() -> MagicMock:
    service = MagicMock()

    async def detect(ingestion, project=None):
        return DetectionOutcome(ingestion_id=ingestion.id, status=IngestionStatus.ANALYZED)

    service.detect = AsyncMock(side_effect=detect)
    return service


@pytest.fixture
def scrape_service(
    sources_repo,
    projects_repo,
    logs_repo,
    memory_repo,
    detector,
    tavily,
    apify,
    local,
    social_strategy,
    forum_strategy,
    extraction_config,
) -> ScrapeService:
    strategies = {
        SourceKind.SOCIAL_POST: social_strategy,
        SourceKind.FORUM: forum_strategy,
        SourceKind.ARTICLE: ArticleStrategy(tavily, apify, local, extraction_config),
    }
    return ScrapeService(
        sources_repo,
        projects_repo,
        logs_repo,
        IngestionStore(memory_repo),
        detector,
        strategies,
        extraction_config,
    )
