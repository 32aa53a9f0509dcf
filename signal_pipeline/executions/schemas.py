"""Data models for execution logs."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ExecutionStatus(str, Enum):
    """running, then exactly one of success or failed."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ExecutionLog:
    id: str
    source_id: str
    status: ExecutionStatus
    items_found: int = 0
    items_processed: int = 0
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
