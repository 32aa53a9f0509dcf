"""Deduplication and ingestion store."""

from signal_pipeline.ingestion.repository import IngestionRepository
from signal_pipeline.ingestion.schemas import (
    IngestionStatus,
    InsertOutcome,
    InsertResult,
    RawIngestion,
)
from signal_pipeline.ingestion.store import MIN_WORD_COUNT, IngestionStore, content_hash

__all__ = [
    "IngestionRepository",
    "IngestionStatus",
    "IngestionStore",
    "InsertOutcome",
    "InsertResult",
    "MIN_WORD_COUNT",
    "RawIngestion",
    "content_hash",
]
