"""
Source fetch orchestrator.

Loads active sources, partitions them by kind and scrapes each one:

    log-create -> extract -> per item (insert -> detect) ->
    touch last_scraped_at -> log-finalize

Social-post and forum sources are one external call each. Article sources
are grouped into batches for the primary extraction tier, then processed
one by one against their batch's prefetched result.

Per-item and per-source failures are recorded (execution log, ingestion
status) and never abort sibling work. Only StoreUnavailableError escapes.
"""

import time
from dataclasses import dataclass, field

import asyncpg
import structlog
from pydantic import BaseModel, Field

from signal_pipeline.executions.repository import ExecutionLogRepository
from signal_pipeline.executions.schemas import ExecutionStatus
from signal_pipeline.extraction.article import ArticleStrategy
from signal_pipeline.extraction.base import ExtractionStrategy, classify_source
from signal_pipeline.extraction.config import ExtractionConfig
from signal_pipeline.extraction.schemas import ContentItem, PageExtraction, SourceKind
from signal_pipeline.ingestion.schemas import (
    IngestionStatus,
    InsertOutcome,
    InsertResult,
    RawIngestion,
)
from signal_pipeline.ingestion.store import IngestionStore
from signal_pipeline.observability.metrics import get_metrics
from signal_pipeline.signals.service import SignalDetectionService
from signal_pipeline.sources.repository import ProjectsRepository, SourcesRepository
from signal_pipeline.sources.schemas import Project, Source
from signal_pipeline.storage.database import StoreUnavailableError

logger = structlog.get_logger(__name__)


@dataclass
class SourceScrapeResult:
    """Counts for one source-level scrape."""

    source_id: str
    kind: SourceKind
    items_found: int = 0
    items_processed: int = 0
    duplicates: int = 0
    rejected: int = 0
    analyzed: int = 0
    analysis_failed: int = 0
    signals_created: int = 0
    error: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None


class ScrapeSummary(BaseModel):
    """Aggregate result of one orchestrator run."""

    scraped: int = 0
    new_items: int = 0
    duplicates: int = 0
    rejected: int = 0
    failed_sources: int = 0
    analyzed: int = 0
    analysis_failed: int = 0
    signals_created: int = 0
    errors: list[str] = Field(default_factory=list)

    def add(self, result: SourceScrapeResult) -> None:
        self.scraped += 1
        self.new_items += result.items_processed
        self.duplicates += result.duplicates
        self.rejected += result.rejected
        self.analyzed += result.analyzed
        self.analysis_failed += result.analysis_failed
        self.signals_created += result.signals_created
        if result.error is not None:
            self.failed_sources += 1
            self.errors.append(f"{result.source_id}: {result.error}")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class ScrapeService:
    """
    Orchestrates extraction, deduplicated storage and detection per source.

    Usage:
        service = ScrapeService(sources, projects, logs, store, detector, strategies)
        summary = await service.run()                  # all active sources
        summary = await service.run(source_id="...")   # one source
        summary = await service.run(project_id="...")  # one project
    """

    def __init__(
        self,
        sources: SourcesRepository,
        projects: ProjectsRepository,
        logs: ExecutionLogRepository,
        store: IngestionStore,
        detector: SignalDetectionService,
        strategies: dict[SourceKind, ExtractionStrategy],
        config: ExtractionConfig | None = None,
    ):
        self._sources = sources
        self._projects = projects
        self._logs = logs
        self._store = store
        self._detector = detector
        self._strategies = strategies
        self._config = config or ExtractionConfig()
        self._metrics = get_metrics()

    async def run(
        self,
        source_id: str | None = None,
        project_id: str | None = None,
        max_sources: int | None = None,
    ) -> ScrapeSummary:
        """
        Scrape active sources.

        Args:
            source_id: Only this source (if active)
            project_id: Only this project's sources
            max_sources: Cap on sources processed

        Returns:
            ScrapeSummary with scraped, new_items and duplicates counts

        Raises:
            StoreUnavailableError: The store connection was lost
        """
        sources = await self._sources.list_active(
            source_id=source_id, project_id=project_id, limit=max_sources
        )
        groups: dict[SourceKind, list[Source]] = {kind: [] for kind in SourceKind}
        for source in sources:
            groups[classify_source(source.source_type, source.url)].append(source)

        logger.info(
            "Scrape run started",
            sources=len(sources),
            social_post=len(groups[SourceKind.SOCIAL_POST]),
            forum=len(groups[SourceKind.FORUM]),
            article=len(groups[SourceKind.ARTICLE]),
        )

        summary = ScrapeSummary()
        projects: dict[str, Project | None] = {}

        for kind in (SourceKind.SOCIAL_POST, SourceKind.FORUM):
            for source in groups[kind]:
                project = await self._project(source.project_id, projects)
                summary.add(await self._scrape_guarded(source, kind, project))

        articles = groups[SourceKind.ARTICLE]
        size = self._config.batch_size
        for start in range(0, len(articles), size):
            batch = articles[start:start + size]
            primary = await self._prefetch(batch)
            for source in batch:
                project = await self._project(source.project_id, projects)
                summary.add(
                    await self._scrape_guarded(
                        source, SourceKind.ARTICLE, project, primary.get(source.url)
                    )
                )

        logger.info(
            "Scrape run finished",
            scraped=summary.scraped,
            new_items=summary.new_items,
            duplicates=summary.duplicates,
            failed_sources=summary.failed_sources,
            signals_created=summary.signals_created,
        )
        return summary

    async def _project(
        self, project_id: str, cache: dict[str, Project | None]
    ) -> Project | None:
        if project_id not in cache:
            cache[project_id] = await self._projects.get_by_id(project_id)
        return cache[project_id]

    async def _prefetch(self, batch: list[Source]) -> dict[str, PageExtraction]:
        strategy = self._strategies[SourceKind.ARTICLE]
        if not isinstance(strategy, ArticleStrategy):
            return {}
        return await strategy.prefetch([s.url for s in batch])

    async def _scrape_guarded(
        self,
        source: Source,
        kind: SourceKind,
        project: Project | None,
        primary: PageExtraction | None = None,
    ) -> SourceScrapeResult:
        """Scrape one source; anything but a lost store becomes a failed result."""
        try:
            return await self.scrape_source(source, kind, project, primary)
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.exception("Source scrape aborted", source_id=source.id)
            return SourceScrapeResult(
                source_id=source.id, kind=kind, error=f"{type(e).__name__}: {e}"
            )

    async def scrape_source(
        self,
        source: Source,
        kind: SourceKind,
        project: Project | None = None,
        primary: PageExtraction | None = None,
    ) -> SourceScrapeResult:
        """
        Scrape one source end to end and finalize its execution log.

        Args:
            source: Source to scrape
            kind: Resolved kind of the source
            project: Owning project, for detection prompts
            primary: Prefetched primary-tier result (article sources)
        """
        log = logger.bind(source_id=source.id, project_id=source.project_id, kind=kind.value)
        result = SourceScrapeResult(source_id=source.id, kind=kind)
        start = time.perf_counter()
        log_id = await self._logs.start(source.id)

        try:
            items = await self._extract(source, kind, primary)
        except StoreUnavailableError:
            raise
        except Exception as e:
            result.error = str(e) or type(e).__name__
            await self._logs.finish(
                log_id, ExecutionStatus.FAILED, 0, 0, result.error, _elapsed_ms(start)
            )
            self._metrics.record_source_scraped(kind.value, success=False)
            log.warning("Extraction failed", error=result.error)
            return result

        result.items_found = len(items)
        try:
            for item in items:
                try:
                    await self._process_item(item, source, project, result)
                except StoreUnavailableError:
                    raise
                except Exception as e:
                    result.errors.append(f"Item {item.url} failed: {type(e).__name__}: {e}")
                    log.warning("Item processing failed", url=item.url, error=str(e))
            await self._sources.touch_last_scraped(source.id)
        except StoreUnavailableError:
            raise
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            await self._logs.finish(
                log_id,
                ExecutionStatus.FAILED,
                result.items_found,
                result.items_processed,
                " | ".join([*result.errors, result.error]),
                _elapsed_ms(start),
            )
            self._metrics.record_source_scraped(kind.value, success=False)
            log.exception("Source scrape failed after extraction")
            return result

        await self._logs.finish(
            log_id,
            ExecutionStatus.SUCCESS,
            result.items_found,
            result.items_processed,
            " | ".join(result.errors) or None,
            _elapsed_ms(start),
        )
        self._metrics.record_source_scraped(kind.value, success=True)
        log.info(
            "Source scraped",
            items_found=result.items_found,
            items_processed=result.items_processed,
            duplicates=result.duplicates,
            rejected=result.rejected,
            signals=result.signals_created,
        )
        return result

    async def _extract(
        self, source: Source, kind: SourceKind, primary: PageExtraction | None
    ) -> list[ContentItem]:
        strategy = self._strategies[kind]
        if isinstance(strategy, ArticleStrategy):
            return await strategy.extract(source, primary=primary)
        return await strategy.extract(source)

    async def _process_item(
        self,
        item: ContentItem,
        source: Source,
        project: Project | None,
        result: SourceScrapeResult,
    ) -> None:
        if not item.content.strip():
            result.rejected += 1
            return

        try:
            inserted: InsertResult = await self._store.insert_item(item, source)
        except StoreUnavailableError:
            raise
        except (asyncpg.PostgresError, UnicodeError) as e:
            result.errors.append(f"Insert failed for {item.url}: {e}")
            return

        if inserted.outcome is InsertOutcome.DUPLICATE:
            result.duplicates += 1
            return
        if inserted.outcome is InsertOutcome.REJECTED:
            result.rejected += 1
            return

        result.items_processed += 1
        ingestion = RawIngestion(
            id=inserted.ingestion_id,
            source_id=source.id,
            project_id=source.project_id,
            content=item.content,
            content_hash=inserted.content_hash,
            url=item.url,
            word_count=item.word_count,
            extraction_method=item.method.value,
            metadata=item.metadata,
            source_type=source.source_type,
        )

        outcome = await self._detector.detect(ingestion, project)
        result.signals_created += len(outcome.signals)
        if outcome.status is IngestionStatus.ANALYZED:
            result.analyzed += 1
        elif outcome.status is IngestionStatus.ANALYSIS_FAILED:
            result.analysis_failed += 1
            result.errors.append(f"Analysis failed for {ingestion.id}: {outcome.error}")
        if outcome.status_error is not None:
            result.errors.append(
                f"Status update failed for {ingestion.id}: {outcome.status_error}"
            )
