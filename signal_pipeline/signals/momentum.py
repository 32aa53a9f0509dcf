"""
Momentum re-analysis over open signals.

Signals old enough to have a history are shown to the model alongside the
content captured in a trailing window. Accepted updates change only status
and momentum, append to the signal's momentum history, and link the
supporting ingestions as ``momentum`` evidence.
"""

from datetime import datetime, timedelta, timezone

import asyncpg
import structlog

from signal_pipeline.extraction.errors import ExternalServiceError
from signal_pipeline.ingestion.repository import IngestionRepository
from signal_pipeline.ingestion.schemas import RawIngestion
from signal_pipeline.observability.metrics import get_metrics
from signal_pipeline.signals.config import SignalsConfig
from signal_pipeline.signals.llm_client import SignalLLMClient
from signal_pipeline.signals.parsing import parse_momentum_response
from signal_pipeline.signals.prompts import (
    MOMENTUM_SYSTEM_PROMPT,
    build_momentum_prompt,
    truncate,
)
from signal_pipeline.signals.repository import SignalsRepository
from signal_pipeline.signals.schemas import (
    OPEN_SIGNAL_STATUSES,
    EvidenceType,
    MomentumSummary,
    MomentumUpdate,
    Signal,
)
from signal_pipeline.sources.repository import ProjectsRepository
from signal_pipeline.storage.database import StoreUnavailableError

logger = structlog.get_logger(__name__)


def _signal_context(signal: Signal) -> dict:
    return {
        "signal_id": signal.id,
        "headline": signal.headline,
        "summary": signal.summary,
        "status": signal.status.value,
        "momentum": signal.momentum.value,
        "detected_at": signal.detected_at.isoformat() if signal.detected_at else None,
    }


def _ingestion_context(ingestion: RawIngestion, excerpt_chars: int) -> dict:
    return {
        "ingestion_id": ingestion.id,
        "url": ingestion.url,
        "scraped_at": ingestion.scraped_at.isoformat() if ingestion.scraped_at else None,
        "content": truncate(ingestion.content, excerpt_chars),
    }


def apply_history(signal: Signal, update: MomentumUpdate, checked_at: datetime) -> dict:
    """Signal metadata with this check appended to its momentum history."""
    metadata = dict(signal.metadata)
    history = list(metadata.get("momentum_history") or [])
    history.append({
        "checked_at": checked_at.isoformat(),
        "previous_status": signal.status.value,
        "new_status": update.new_status.value,
        "previous_momentum": signal.momentum.value,
        "new_momentum": update.new_momentum.value,
        "reason": update.reason,
        "supporting_ingestion_ids": update.supporting_ingestion_ids,
    })
    metadata["momentum_history"] = history
    metadata["total_momentum_checks"] = int(metadata.get("total_momentum_checks") or 0) + 1
    metadata["last_momentum_check"] = checked_at.isoformat()
    return metadata


class MomentumService:
    """
    Periodic momentum pass for one project.

    Usage:
        service = MomentumService(ingestions, signals, projects, llm)
        summary = await service.analyze_momentum(project_id, lookback_hours=48)
    """

    def __init__(
        self,
        ingestions: IngestionRepository,
        signals: SignalsRepository,
        projects: ProjectsRepository,
        llm: SignalLLMClient,
        config: SignalsConfig | None = None,
    ):
        self._ingestions = ingestions
        self._signals = signals
        self._projects = projects
        self._llm = llm
        self._config = config or SignalsConfig()

    async def analyze_momentum(
        self,
        project_id: str,
        lookback_hours: int | None = None,
        now: datetime | None = None,
    ) -> MomentumSummary:
        """
        Re-assess momentum of a project's open signals.

        Args:
            project_id: Project to analyze
            lookback_hours: Window of recent content to consider
            now: Reference time (defaults to current UTC time)

        Returns:
            MomentumSummary; detector and parse failures are reported in
            ``error`` rather than raised
        """
        now = now or datetime.now(timezone.utc)
        lookback = lookback_hours or self._config.momentum_lookback_hours
        summary = MomentumSummary(project_id=project_id)

        if not self._llm.is_configured:
            summary.success = False
            summary.error = "AI detector not configured"
            return summary

        signals = await self._signals.list_open(
            project_id,
            list(OPEN_SIGNAL_STATUSES),
            detected_before=now - timedelta(hours=self._config.momentum_min_signal_age_hours),
            limit=self._config.max_momentum_signals,
        )
        if not signals:
            summary.analysis_notes = "No signals old enough for momentum analysis"
            return summary

        ingestions = await self._ingestions.list_recent(
            project_id,
            since=now - timedelta(hours=lookback),
            limit=self._config.max_momentum_ingestions,
        )
        if not ingestions:
            summary.analysis_notes = "No recent content to analyze"
            return summary

        summary.signals_analyzed = len(signals)
        project = await self._projects.get_by_id(project_id)
        prompt = build_momentum_prompt(
            [_signal_context(s) for s in signals],
            [_ingestion_context(i, self._config.momentum_excerpt_chars) for i in ingestions],
            lookback_hours=lookback,
            project_name=project.name if project else None,
        )

        try:
            response = await self._llm.complete_json(
                MOMENTUM_SYSTEM_PROMPT, prompt, operation="momentum"
            )
        except StoreUnavailableError:
            raise
        except Exception as e:
            error = str(e) if isinstance(e, ExternalServiceError) else f"{type(e).__name__}: {e}"
            logger.warning("Momentum analysis call failed", project_id=project_id, error=error)
            summary.success = False
            summary.error = error
            return summary

        summary.token_usage = response.usage
        summary.estimated_cost_usd = response.usage.estimated_cost_usd(
            self._config.prompt_token_price, self._config.completion_token_price
        )

        parsed = parse_momentum_response(response.text)
        if parsed.parse_error is not None:
            summary.success = False
            summary.error = f"Unparseable momentum response: {parsed.parse_error}"
            summary.signals_unchanged = len(signals)
            return summary

        summary.analysis_notes = parsed.notes
        by_id = {s.id: s for s in signals}
        window_ids = {i.id for i in ingestions}
        errors: list[str] = []

        for update in parsed.updates:
            signal = by_id.pop(update.signal_id, None)
            if signal is None:
                logger.warning(
                    "Momentum update for unknown or repeated signal", signal_id=update.signal_id
                )
                continue
            try:
                updated = await self._signals.update_momentum(
                    signal.id,
                    update.new_status,
                    update.new_momentum,
                    apply_history(signal, update, now),
                    allowed_statuses=list(OPEN_SIGNAL_STATUSES),
                )
                if not updated:
                    continue
                summary.signals_updated += 1
                summary.updated_signal_ids.append(signal.id)

                for ingestion_id in update.supporting_ingestion_ids:
                    if ingestion_id not in window_ids:
                        continue
                    if await self._signals.link_evidence(
                        signal.id,
                        ingestion_id,
                        EvidenceType.MOMENTUM,
                        {"reason": update.reason, "checked_at": now.isoformat()},
                    ):
                        summary.evidence_linked += 1
            except asyncpg.PostgresError as e:
                errors.append(f"{signal.id}: {e}")
                logger.warning("Momentum update failed", signal_id=signal.id, error=str(e))

        summary.signals_unchanged = summary.signals_analyzed - summary.signals_updated
        if errors:
            summary.error = " | ".join(errors)

        get_metrics().momentum_updates.inc(summary.signals_updated)
        logger.info(
            "Momentum pass finished",
            project_id=project_id,
            analyzed=summary.signals_analyzed,
            updated=summary.signals_updated,
            evidence_linked=summary.evidence_linked,
            tokens=summary.token_usage.total_tokens,
        )
        return summary
