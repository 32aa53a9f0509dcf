"""Execution logs: one row per source-level scrape attempt."""

from signal_pipeline.executions.repository import ExecutionLogRepository
from signal_pipeline.executions.schemas import ExecutionLog, ExecutionStatus

__all__ = ["ExecutionLog", "ExecutionLogRepository", "ExecutionStatus"]
