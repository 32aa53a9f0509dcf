"""Database repository for signals and signal evidence links."""

import json
import logging
from datetime import datetime
from typing import Any

import asyncpg

from signal_pipeline.signals.schemas import (
    EvidenceType,
    Momentum,
    RiskClassification,
    Signal,
    SignalStatus,
)
from signal_pipeline.storage.database import Database, load_jsonb

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS signals (
    id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    project_id  UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    source_id   UUID REFERENCES sources(id) ON DELETE SET NULL,
    headline    TEXT NOT NULL,
    summary     TEXT NOT NULL DEFAULT '',
    key_points  TEXT[] NOT NULL DEFAULT '{}',
    status      TEXT NOT NULL DEFAULT 'New',
    momentum    TEXT NOT NULL DEFAULT 'medium'
        CHECK (momentum IN ('high', 'medium', 'low')),
    risk_level  TEXT NOT NULL DEFAULT 'monitor',
    tags        TEXT[] NOT NULL DEFAULT '{}',
    detected_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    metadata    JSONB NOT NULL DEFAULT '{}'
);

CREATE INDEX IF NOT EXISTS idx_signals_project_status
    ON signals(project_id, status, detected_at DESC);

CREATE TABLE IF NOT EXISTS signal_evidence (
    id               UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    signal_id        UUID NOT NULL REFERENCES signals(id) ON DELETE CASCADE,
    raw_ingestion_id UUID NOT NULL REFERENCES raw_ingestions(id) ON DELETE CASCADE,
    reference_type   TEXT NOT NULL DEFAULT 'detected'
        CHECK (reference_type IN ('detected', 'momentum', 'manual')),
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    metadata         JSONB NOT NULL DEFAULT '{}',
    UNIQUE (signal_id, raw_ingestion_id)
);

CREATE INDEX IF NOT EXISTS idx_signal_evidence_ingestion
    ON signal_evidence(raw_ingestion_id);
"""

_INSERT_SIGNAL_SQL = """
INSERT INTO signals (
    project_id, source_id, headline, summary, key_points,
    status, momentum, risk_level, tags, metadata
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
RETURNING *
"""

# A repeated link between the same signal and ingestion is a no-op
_LINK_SQL = """
INSERT INTO signal_evidence (signal_id, raw_ingestion_id, reference_type, metadata)
VALUES ($1, $2, $3, $4)
ON CONFLICT (signal_id, raw_ingestion_id) DO NOTHING
"""

# Momentum re-analysis only touches status, momentum and bookkeeping metadata
_UPDATE_MOMENTUM_SQL = """
UPDATE signals
SET status = $2, momentum = $3, metadata = $4, updated_at = NOW()
WHERE id = $1 AND status = ANY($5::text[])
"""

_LINK_ERRORS = (
    asyncpg.exceptions.IntegrityConstraintViolationError,
    asyncpg.exceptions.DataError,
)


def _record_to_signal(record) -> Signal:
    """Convert an asyncpg Record to a Signal dataclass."""
    return Signal(
        id=str(record["id"]),
        project_id=str(record["project_id"]),
        source_id=str(record["source_id"]) if record["source_id"] else None,
        headline=record["headline"],
        summary=record["summary"],
        key_points=list(record["key_points"] or []),
        status=SignalStatus(record["status"]),
        momentum=Momentum(record["momentum"]),
        risk_level=RiskClassification(record["risk_level"]),
        tags=list(record["tags"] or []),
        detected_at=record["detected_at"],
        updated_at=record["updated_at"],
        metadata=load_jsonb(record["metadata"]),
    )


class SignalsRepository:
    """Signal persistence and evidence linking."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the signals and signal_evidence tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Signals and evidence tables ensured")

    async def create_with_evidence(
        self,
        signal: Signal,
        ingestion_id: str,
        evidence_metadata: dict[str, Any] | None = None,
    ) -> tuple[Signal, bool]:
        """
        Insert a signal and its ``detected`` evidence link in one transaction.

        The link is written under a savepoint: if it is rejected the signal
        is still committed and the second element of the result is False.

        Returns:
            (stored signal, whether the evidence link was created)
        """
        async with self._db.transaction() as conn:
            row = await conn.fetchrow(
                _INSERT_SIGNAL_SQL,
                signal.project_id,
                signal.source_id,
                signal.headline,
                signal.summary,
                signal.key_points,
                signal.status.value,
                signal.momentum.value,
                signal.risk_level.value,
                signal.tags,
                json.dumps(signal.metadata),
            )
            stored = _record_to_signal(row)

            linked = True
            try:
                async with conn.transaction():
                    await conn.execute(
                        _LINK_SQL,
                        stored.id,
                        ingestion_id,
                        EvidenceType.DETECTED.value,
                        json.dumps(evidence_metadata or {}),
                    )
            except _LINK_ERRORS as e:
                linked = False
                logger.warning(
                    f"Signal {stored.id} stored without evidence link to "
                    f"ingestion {ingestion_id}: {e}"
                )

        return stored, linked

    async def link_evidence(
        self,
        signal_id: str,
        ingestion_id: str,
        reference_type: EvidenceType,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Link a signal to an ingestion. False if the link already existed."""
        status = await self._db.execute(
            _LINK_SQL,
            signal_id,
            ingestion_id,
            reference_type.value,
            json.dumps(metadata or {}),
        )
        return status.split()[-1] != "0"

    async def get_by_id(self, signal_id: str) -> Signal | None:
        row = await self._db.fetchrow("SELECT * FROM signals WHERE id = $1", signal_id)
        return _record_to_signal(row) if row else None

    async def list_open(
        self,
        project_id: str,
        statuses: list[SignalStatus],
        detected_before: datetime,
        limit: int = 50,
    ) -> list[Signal]:
        """Signals of a project in one of ``statuses`` detected before a cutoff."""
        rows = await self._db.fetch(
            """SELECT * FROM signals
               WHERE project_id = $1 AND status = ANY($2::text[])
                 AND detected_at <= $3
               ORDER BY detected_at DESC LIMIT $4""",
            project_id,
            [s.value for s in statuses],
            detected_before,
            limit,
        )
        return [_record_to_signal(r) for r in rows]

    async def update_momentum(
        self,
        signal_id: str,
        status: SignalStatus,
        momentum: Momentum,
        metadata: dict[str, Any],
        allowed_statuses: list[SignalStatus],
    ) -> bool:
        """Update status and momentum of a signal that is still open."""
        result = await self._db.execute(
            _UPDATE_MOMENTUM_SQL,
            signal_id,
            status.value,
            momentum.value,
            json.dumps(metadata),
            [s.value for s in allowed_statuses],
        )
        return result.split()[-1] != "0"

