"""Data models for stored raw ingestions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class IngestionStatus(str, Enum):
    """Lifecycle of a RawIngestion.

    pending_analysis moves to exactly one terminal state and never back.
    """

    PENDING_ANALYSIS = "pending_analysis"
    ANALYZED = "analyzed"
    ANALYSIS_FAILED = "analysis_failed"

    @property
    def is_terminal(self) -> bool:
        return self is not IngestionStatus.PENDING_ANALYSIS

    def can_transition_to(self, target: "IngestionStatus") -> bool:
        return self is IngestionStatus.PENDING_ANALYSIS and target.is_terminal


class InsertOutcome(str, Enum):
    """What happened when content was offered to the store."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"  # below the word-count floor


@dataclass
class InsertResult:
    outcome: InsertOutcome
    ingestion_id: str | None = None
    content_hash: str | None = None

    @property
    def inserted(self) -> bool:
        return self.outcome is InsertOutcome.INSERTED


@dataclass
class RawIngestion:
    """One persisted unit of extracted content."""

    id: str
    source_id: str
    project_id: str
    content: str
    content_hash: str
    url: str
    word_count: int
    extraction_method: str
    status: IngestionStatus = IngestionStatus.PENDING_ANALYSIS
    scraped_at: datetime | None = None
    analyzed_at: datetime | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    source_type: str | None = None  # joined from sources when listed
