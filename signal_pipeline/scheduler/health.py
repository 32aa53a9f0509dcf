"""
Pipeline health classification.

Health is derived from execution logs only:

- unhealthy: no execution has ever been recorded
- degraded: the most recent execution failed, or nothing succeeded within
  twice the shortest active refresh interval
- healthy: otherwise
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, Field

from signal_pipeline.executions.repository import ExecutionLogRepository
from signal_pipeline.executions.schemas import ExecutionLog, ExecutionStatus
from signal_pipeline.ingestion.repository import IngestionRepository
from signal_pipeline.ingestion.schemas import RawIngestion
from signal_pipeline.scheduler.config import SchedulerConfig
from signal_pipeline.scheduler.service import normalize_interval
from signal_pipeline.sources.repository import ProjectsRepository

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class LastRun(BaseModel):
    source_id: str
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    items_found: int = 0
    items_processed: int = 0
    error_message: str | None = None


class PipelineHealth(BaseModel):
    status: HealthStatus
    checked_at: datetime
    reason: str | None = None
    shortest_interval_hours: int
    last_run: LastRun | None = None
    last_success_at: datetime | None = None
    hours_since_success: float | None = None
    active_projects: int = 0
    projects_by_interval: dict[int, int] = Field(default_factory=dict)
    stuck_ingestions: int = 0


def classify_health(
    latest: ExecutionLog | None,
    last_success_at: datetime | None,
    shortest_interval_hours: int,
    now: datetime,
) -> tuple[HealthStatus, str | None]:
    """Classify pipeline health; returns the status and a reason for non-healthy."""
    if latest is None:
        return HealthStatus.UNHEALTHY, "No execution recorded"

    if latest.status == ExecutionStatus.FAILED:
        return HealthStatus.DEGRADED, f"Most recent execution failed: {latest.error_message}"

    if last_success_at is None:
        return HealthStatus.DEGRADED, "No successful execution recorded"

    if last_success_at.tzinfo is None:
        last_success_at = last_success_at.replace(tzinfo=timezone.utc)
    threshold = timedelta(hours=2 * shortest_interval_hours)
    if now - last_success_at > threshold:
        return (
            HealthStatus.DEGRADED,
            f"No successful execution in over {2 * shortest_interval_hours}h",
        )

    return HealthStatus.HEALTHY, None


class HealthMonitor:
    """Builds the pipeline health report from stored execution state."""

    def __init__(
        self,
        logs: ExecutionLogRepository,
        projects: ProjectsRepository,
        ingestions: IngestionRepository,
        config: SchedulerConfig | None = None,
    ):
        self._logs = logs
        self._projects = projects
        self._ingestions = ingestions
        self._config = config or SchedulerConfig()

    @property
    def stuck_after_minutes(self) -> int:
        return self._config.stuck_after_minutes

    def _stuck_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(minutes=self._config.stuck_after_minutes)

    async def check(self, now: datetime | None = None) -> PipelineHealth:
        now = now or datetime.now(timezone.utc)

        projects = await self._projects.list_active()
        by_interval = Counter(
            normalize_interval(
                p.refresh_interval_hours,
                self._config.allowed_intervals,
                self._config.default_interval_hours,
            )
            for p in projects
        )
        shortest = min(by_interval) if by_interval else self._config.default_interval_hours

        latest = await self._logs.latest()
        last_success_at = await self._logs.last_success_at()
        stuck = await self._ingestions.count_stuck(self._stuck_cutoff(now))

        status, reason = classify_health(latest, last_success_at, shortest, now)

        hours_since_success = None
        if last_success_at is not None:
            if last_success_at.tzinfo is None:
                last_success_at = last_success_at.replace(tzinfo=timezone.utc)
            hours_since_success = round((now - last_success_at).total_seconds() / 3600, 2)

        if status != HealthStatus.HEALTHY:
            logger.warning("Pipeline health check", status=status.value, reason=reason)

        return PipelineHealth(
            status=status,
            checked_at=now,
            reason=reason,
            shortest_interval_hours=shortest,
            last_run=LastRun(
                source_id=latest.source_id,
                status=latest.status.value,
                started_at=latest.started_at,
                completed_at=latest.completed_at,
                items_found=latest.items_found,
                items_processed=latest.items_processed,
                error_message=latest.error_message,
            )
            if latest
            else None,
            last_success_at=last_success_at,
            hours_since_success=hours_since_success,
            active_projects=len(projects),
            projects_by_interval=dict(sorted(by_interval.items())),
            stuck_ingestions=stuck,
        )

    async def stuck_ingestions(self, now: datetime | None = None) -> list[RawIngestion]:
        """Pending ingestions older than the stuck threshold, oldest first."""
        now = now or datetime.now(timezone.utc)
        return await self._ingestions.list_stuck(
            self._stuck_cutoff(now), limit=self._config.stuck_report_limit
        )
