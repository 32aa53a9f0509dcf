"""
asyncpg pool wrapper shared by every repository.

All queries go through a connection pool sized from Settings.
Connection-level failures are surfaced as StoreUnavailableError so that
callers can tell "the store is gone" (fatal for an invocation) apart from
ordinary query errors (recorded per item or per source).
"""

import json
import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from types import TracebackType
from typing import Any

import asyncpg

from signal_pipeline.config.settings import get_settings

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (
    OSError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
)


class StoreUnavailableError(Exception):
    """The persistent store cannot be reached."""


@contextmanager
def _translate_connection_errors() -> Iterator[None]:
    try:
        yield
    except _CONNECTION_ERRORS as e:
        raise StoreUnavailableError(f"Database unavailable: {e}") from e


def load_jsonb(value: Any) -> dict[str, Any]:
    """Decode a JSONB column that asyncpg returns as text."""
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value) if value else {}
    return dict(value)


class Database:
    """
    Pooled access to the pipeline's PostgreSQL store.

    Usage:
        db = Database()
        await db.connect()

        async with db.transaction() as conn:
            await conn.execute("INSERT INTO raw_ingestions ...")

        await db.close()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        """
        Read pool sizing from Settings unless overridden.

        Args:
            database_url: DSN; defaults to settings.database_url
            min_size: Connections kept open
            max_size: Upper bound on open connections
        """
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = settings.db_command_timeout

        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """
        Open the pool and make sure gen_random_uuid() is available.

        Raises:
            StoreUnavailableError: If the server cannot be reached
        """
        try:
            with _translate_connection_errors():
                self._pool = await asyncpg.create_pool(
                    self._database_url,
                    min_size=self._min_size,
                    max_size=self._max_size,
                    command_timeout=self._command_timeout,
                )
                async with self._pool.acquire() as conn:
                    # gen_random_uuid() is built in from PostgreSQL 13
                    await conn.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

            logger.info(
                f"Store pool ready ({self._min_size}..{self._max_size} connections)"
            )

        except StoreUnavailableError as e:
            logger.error(f"Store connection failed: {e}")
            raise

    async def close(self) -> None:
        """Release every pooled connection."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Store pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        """The open pool; RuntimeError before connect()."""
        if self._pool is None:
            raise RuntimeError("Database.connect() has not been awaited")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool."""
        with _translate_connection_errors():
            async with self.pool.acquire() as conn:
                yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Run the body inside one transaction on a dedicated connection.

        Usage:
            async with db.transaction() as conn:
                await conn.execute("INSERT INTO signals ...")
                await conn.execute("INSERT INTO signal_evidence ...")
        """
        with _translate_connection_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query and return the PostgreSQL status string."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Execute a query and fetch all results."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Execute a query and fetch one result."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Execute a query and fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """
        Round-trip a trivial query.

        Returns:
            False when the store cannot answer
        """
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except (StoreUnavailableError, asyncpg.PostgresError, RuntimeError) as e:
            logger.warning(f"Store health check failed: {e}")
            return False

