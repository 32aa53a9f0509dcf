"""
Pipeline facade.

Wires repositories, extraction clients and services over one Database so
the CLI and the API share a single construction path.

Usage:
    async with Pipeline(db) as pipeline:
        summary = await pipeline.run_scrape()
        health = await pipeline.health()
"""

from contextlib import AsyncExitStack

import structlog

from signal_pipeline.config.settings import Settings, get_settings
from signal_pipeline.executions.repository import ExecutionLogRepository
from signal_pipeline.extraction.article import ArticleStrategy
from signal_pipeline.extraction.clients import ApifyClient, TavilyClient
from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.platforms import ForumStrategy, SocialPostStrategy
from signal_pipeline.extraction.readability import ReadabilityExtractor
from signal_pipeline.extraction.retry import RetryPolicy
from signal_pipeline.extraction.schemas import SourceKind
from signal_pipeline.ingestion.repository import IngestionRepository
from signal_pipeline.ingestion.schemas import RawIngestion
from signal_pipeline.ingestion.store import IngestionStore
from signal_pipeline.scheduler.config import SchedulerConfig
from signal_pipeline.scheduler.health import HealthMonitor, PipelineHealth
from signal_pipeline.scheduler.service import RefreshScheduler, RefreshSummary
from signal_pipeline.services.scrape_service import ScrapeService, ScrapeSummary
from signal_pipeline.signals.config import SignalsConfig
from signal_pipeline.signals.llm_client import SignalLLMClient
from signal_pipeline.signals.momentum import MomentumService
from signal_pipeline.signals.repository import SignalsRepository
from signal_pipeline.signals.schemas import DetectionSummary, MomentumSummary
from signal_pipeline.signals.service import SignalDetectionService
from signal_pipeline.sources.repository import ProjectsRepository, SourcesRepository
from signal_pipeline.storage.database import Database

logger = structlog.get_logger(__name__)


async def init_schema(db: Database) -> None:
    """Create every table the pipeline uses (idempotent).

    Order matters: sources reference projects, ingestions and execution
    logs reference sources, evidence references signals and ingestions.
    """
    await ProjectsRepository(db).create_table()
    await IngestionRepository(db).create_table()
    await ExecutionLogRepository(db).create_table()
    await SignalsRepository(db).create_table()
    logger.info("Schema initialized")


class Pipeline:
    """All pipeline operations over one database and one set of clients."""

    def __init__(
        self,
        db: Database,
        settings: Settings | None = None,
        extraction_config: ExtractionConfig | None = None,
        signals_config: SignalsConfig | None = None,
        scheduler_config: SchedulerConfig | None = None,
    ):
        self.db = db
        self._settings = settings or get_settings()
        self._extraction_config = extraction_config or ExtractionConfig()
        self._signals_config = signals_config or SignalsConfig()
        self._scheduler_config = scheduler_config or SchedulerConfig()
        self._stack = AsyncExitStack()

        retry_policy = RetryPolicy.from_settings(self._settings)

        self.projects = ProjectsRepository(db)
        self.sources = SourcesRepository(db)
        self.ingestions = IngestionRepository(db)
        self.logs = ExecutionLogRepository(db)
        self.signals = SignalsRepository(db)

        cfg = self._extraction_config
        self.tavily = TavilyClient(
            extract_depth=cfg.primary_extract_depth,
            timeout=cfg.primary_timeout_seconds,
            retry_policy=retry_policy,
            settings=self._settings,
        )
        self.apify = ApifyClient(
            timeout=cfg.actor_timeout_seconds,
            retry_policy=retry_policy,
            settings=self._settings,
        )
        self.local = ReadabilityExtractor(
            timeout=cfg.local_timeout_seconds, user_agent=cfg.user_agent
        )
        self.llm = SignalLLMClient(
            config=self._signals_config,
            settings=self._settings,
            retry_policy=retry_policy,
        )

        self.detection = SignalDetectionService(
            self.ingestions, self.signals, self.projects, self.llm, self._signals_config
        )
        self.momentum = MomentumService(
            self.ingestions, self.signals, self.projects, self.llm, self._signals_config
        )
        self.scrape = ScrapeService(
            sources=self.sources,
            projects=self.projects,
            logs=self.logs,
            store=IngestionStore(self.ingestions, cfg.min_article_words),
            detector=self.detection,
            strategies={
                SourceKind.SOCIAL_POST: SocialPostStrategy(self.apify, cfg),
                SourceKind.FORUM: ForumStrategy(self.apify, cfg),
                SourceKind.ARTICLE: ArticleStrategy(self.tavily, self.apify, self.local, cfg),
            },
            config=cfg,
        )
        self.scheduler = RefreshScheduler(
            self.projects, self.scrape, self.detection, self.momentum, self._scheduler_config
        )
        self.monitor = HealthMonitor(
            self.logs, self.projects, self.ingestions, self._scheduler_config
        )

    async def __aenter__(self) -> "Pipeline":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Open the HTTP clients."""
        await self._stack.enter_async_context(self.tavily)
        await self._stack.enter_async_context(self.apify)
        await self._stack.enter_async_context(self.local)
        self._stack.push_async_callback(self.llm.close)

    async def close(self) -> None:
        await self._stack.aclose()

    async def init_schema(self) -> None:
        await init_schema(self.db)

    async def run_scrape(self, source_id: str | None = None) -> ScrapeSummary:
        return await self.scrape.run(source_id=source_id)

    async def run_scheduled_refresh(self) -> RefreshSummary:
        return await self.scheduler.run_scheduled_refresh()

    async def detect_signals(
        self, project_id: str, lookback_hours: int | None = None
    ) -> DetectionSummary:
        return await self.detection.detect_signals(project_id, lookback_hours)

    async def analyze_momentum(
        self, project_id: str, lookback_hours: int | None = None
    ) -> MomentumSummary:
        return await self.momentum.analyze_momentum(project_id, lookback_hours)

    async def health(self) -> PipelineHealth:
        return await self.monitor.check()

    async def stuck_ingestions(self) -> list[RawIngestion]:
        return await self.monitor.stuck_ingestions()
