"""Refresh scheduling and pipeline health."""

from signal_pipeline.scheduler.config import SchedulerConfig
from signal_pipeline.scheduler.health import (
    HealthMonitor,
    HealthStatus,
    PipelineHealth,
    classify_health,
)
from signal_pipeline.scheduler.service import (
    DueProject,
    ProjectRefreshResult,
    RefreshScheduler,
    RefreshSummary,
    hours_since,
    normalize_interval,
)

__all__ = [
    "DueProject",
    "HealthMonitor",
    "HealthStatus",
    "PipelineHealth",
    "ProjectRefreshResult",
    "RefreshScheduler",
    "RefreshSummary",
    "SchedulerConfig",
    "classify_health",
    "hours_since",
    "normalize_interval",
]
