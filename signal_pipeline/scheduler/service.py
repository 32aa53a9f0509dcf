"""
Refresh scheduler.

A project is due when the hours since its last refresh reach its
``refresh_interval_hours``, or when it has never been refreshed. The last
refresh is the newest successful execution log across the project's
sources, so a run that failed everywhere leaves the project due.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from pydantic import BaseModel, Field

from signal_pipeline.scheduler.config import SchedulerConfig
from signal_pipeline.services.scrape_service import ScrapeService, ScrapeSummary
from signal_pipeline.signals.momentum import MomentumService
from signal_pipeline.signals.schemas import DetectionSummary, MomentumSummary
from signal_pipeline.signals.service import SignalDetectionService
from signal_pipeline.sources.repository import ProjectsRepository
from signal_pipeline.sources.schemas import Project
from signal_pipeline.storage.database import StoreUnavailableError

logger = structlog.get_logger(__name__)


def normalize_interval(hours: int | None, allowed: list[int], default: int) -> int:
    """Clamp a configured interval to the allowed set."""
    return hours if hours in allowed else default


def hours_since(last: datetime | None, now: datetime) -> float | None:
    """Elapsed hours since ``last``; None when there is no previous refresh."""
    if last is None:
        return None
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return (now - last).total_seconds() / 3600


@dataclass
class DueProject:
    project: Project
    interval_hours: int
    hours_since_refresh: float | None  # None: never refreshed


class ProjectRefreshResult(BaseModel):
    project_id: str
    hours_since_refresh: float | None = None
    scrape: ScrapeSummary | None = None
    detection: DetectionSummary | None = None
    momentum: MomentumSummary | None = None
    error: str | None = None


class RefreshSummary(BaseModel):
    """Result of one scheduled refresh tick."""

    projects_due: int = 0
    projects_processed: int = 0
    projects_failed: int = 0
    sources_scraped: int = 0
    new_items: int = 0
    duplicates: int = 0
    signals_detected: int = 0
    signals_updated: int = 0
    projects: list[ProjectRefreshResult] = Field(default_factory=list)


class RefreshScheduler:
    """
    Decides which projects are due and refreshes them.

    Usage:
        scheduler = RefreshScheduler(projects, scrape, detection, momentum)
        due = await scheduler.due_projects()
        summary = await scheduler.run_scheduled_refresh()
    """

    def __init__(
        self,
        projects: ProjectsRepository,
        scrape: ScrapeService,
        detection: SignalDetectionService,
        momentum: MomentumService,
        config: SchedulerConfig | None = None,
    ):
        self._projects = projects
        self._scrape = scrape
        self._detection = detection
        self._momentum = momentum
        self._config = config or SchedulerConfig()

    def evaluate(self, project: Project, now: datetime) -> DueProject | None:
        """Return a DueProject if ``project`` is due at ``now``, else None."""
        interval = normalize_interval(
            project.refresh_interval_hours,
            self._config.allowed_intervals,
            self._config.default_interval_hours,
        )
        elapsed = hours_since(project.last_refresh_at, now)
        if elapsed is None or elapsed >= interval:
            return DueProject(project=project, interval_hours=interval, hours_since_refresh=elapsed)
        return None

    async def due_projects(self, now: datetime | None = None) -> list[DueProject]:
        """
        Projects due for refresh, most overdue first.

        Never-refreshed projects sort ahead of everything else.
        """
        now = now or datetime.now(timezone.utc)
        candidates = await self._projects.list_refresh_candidates()
        due = [d for d in (self.evaluate(p, now) for p in candidates) if d is not None]
        due.sort(
            key=lambda d: float("inf")
            if d.hours_since_refresh is None
            else d.hours_since_refresh / d.interval_hours,
            reverse=True,
        )
        return due

    async def run_scheduled_refresh(self, now: datetime | None = None) -> RefreshSummary:
        """
        Refresh every due project, up to ``max_projects_per_run``.

        Each project is scraped, then its pending ingestions get a detection
        pass and its open signals a momentum pass. A failing project is
        recorded and the run moves on.

        Raises:
            StoreUnavailableError: The store connection was lost
        """
        due = await self.due_projects(now)
        summary = RefreshSummary(projects_due=len(due))
        selected = due[: self._config.max_projects_per_run]

        logger.info(
            "Scheduled refresh started",
            due=len(due),
            selected=len(selected),
        )

        for item in selected:
            result = await self._refresh_project(item)
            summary.projects.append(result)
            summary.projects_processed += 1
            if result.error is not None:
                summary.projects_failed += 1
            if result.scrape:
                summary.sources_scraped += result.scrape.scraped
                summary.new_items += result.scrape.new_items
                summary.duplicates += result.scrape.duplicates
                summary.signals_detected += result.scrape.signals_created
            if result.detection:
                summary.signals_detected += result.detection.signals_detected
            if result.momentum:
                summary.signals_updated += result.momentum.signals_updated

        logger.info(
            "Scheduled refresh finished",
            processed=summary.projects_processed,
            failed=summary.projects_failed,
            new_items=summary.new_items,
            signals_detected=summary.signals_detected,
        )
        return summary

    async def _refresh_project(self, item: DueProject) -> ProjectRefreshResult:
        project_id = item.project.id
        result = ProjectRefreshResult(
            project_id=project_id, hours_since_refresh=item.hours_since_refresh
        )
        log = logger.bind(project_id=project_id, interval_hours=item.interval_hours)

        try:
            result.scrape = await self._scrape.run(
                project_id=project_id, max_sources=self._config.max_sources_per_project
            )
            if self._config.run_detection_pass:
                result.detection = await self._detection.detect_signals(project_id)
            if self._config.run_momentum_pass:
                result.momentum = await self._momentum.analyze_momentum(project_id)
        except StoreUnavailableError:
            raise
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            log.exception("Project refresh failed")
            return result

        log.info(
            "Project refreshed",
            scraped=result.scrape.scraped,
            new_items=result.scrape.new_items,
        )
        return result
