"""
Dependency injection for FastAPI endpoints.
"""

from signal_pipeline.services.pipeline import Pipeline
from signal_pipeline.storage.database import Database

# Global instances (initialized on first request)
_database: Database | None = None
_pipeline: Pipeline | None = None


async def get_database() -> Database:
    """Get the shared, connected Database."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


async def get_pipeline() -> Pipeline:
    """
    Get the pipeline instance.

    Creates a singleton with its HTTP clients opened.
    """
    global _pipeline

    if _pipeline is None:
        db = await get_database()
        pipeline = Pipeline(db)
        await pipeline.start()
        _pipeline = pipeline

    return _pipeline


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _pipeline

    if _pipeline is not None:
        await _pipeline.close()
        _pipeline = None

    if _database is not None:
        await _database.close()
        _database = None
