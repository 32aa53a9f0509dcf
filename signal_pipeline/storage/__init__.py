"""Storage layer - asyncpg connection management."""

from signal_pipeline.storage.database import Database, StoreUnavailableError, load_jsonb

__all__ = ["Database", "StoreUnavailableError", "load_jsonb"]
