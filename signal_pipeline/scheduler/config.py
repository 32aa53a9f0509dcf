"""Configuration for refresh scheduling and pipeline health.

All settings can be overridden via SCHEDULER_* environment variables.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerConfig(BaseSettings):
    """Refresh intervals, per-run limits and health thresholds.

    Example:
        SCHEDULER_MAX_PROJECTS_PER_RUN=5
        SCHEDULER_ALLOWED_INTERVALS=[1,2,4,8,12]
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    allowed_intervals: list[int] = Field(
        default=[2, 4, 8, 12],
        description="Refresh intervals (hours) a project may choose",
    )
    default_interval_hours: int = Field(
        default=4,
        ge=1,
        description="Used when a project's interval is outside the allowed set",
    )
    max_projects_per_run: int = Field(default=10, ge=1, le=100)
    max_sources_per_project: int = Field(default=20, ge=1, le=500)

    # Post-scrape passes
    run_detection_pass: bool = True
    run_momentum_pass: bool = True

    # Health
    stuck_after_minutes: int = Field(
        default=30,
        ge=1,
        description="Pending ingestions older than this are reported as stuck",
    )
    stuck_report_limit: int = Field(default=20, ge=1, le=500)

    @field_validator("allowed_intervals")
    @classmethod
    def _positive_sorted(cls, v: list[int]) -> list[int]:
        if not v or any(h <= 0 for h in v):
            raise ValueError("allowed_intervals must be non-empty positive hours")
        return sorted(set(v))
