"""
Signal detection for stored ingestions.

For each ingestion the detector is asked for narratives; every valid
narrative becomes a Signal with a ``detected`` evidence link back to the
ingestion, and the ingestion moves to ``analyzed``. Any failure (detector
error, unreadable response, persistence error) moves it to
``analysis_failed`` instead and is never raised to the caller. Only a lost
store connection propagates.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import structlog

from signal_pipeline.extraction.base import classify_source
from signal_pipeline.ingestion.repository import IngestionRepository
from signal_pipeline.ingestion.schemas import IngestionStatus, RawIngestion
from signal_pipeline.observability.metrics import get_metrics
from signal_pipeline.signals.config import SignalsConfig
from signal_pipeline.signals.llm_client import SignalLLMClient
from signal_pipeline.signals.parsing import ParsedDetection, parse_detection_response
from signal_pipeline.signals.prompts import DETECTION_SYSTEM_PROMPT, build_detection_prompt
from signal_pipeline.signals.repository import SignalsRepository
from signal_pipeline.signals.schemas import (
    DetectedNarrative,
    DetectionSummary,
    Signal,
    SignalStatus,
    TokenUsage,
    classify_risk,
    momentum_from_trend,
)
from signal_pipeline.sources.repository import ProjectsRepository
from signal_pipeline.sources.schemas import Project
from signal_pipeline.storage.database import StoreUnavailableError

logger = structlog.get_logger(__name__)

# Headlines are stored short
MAX_HEADLINE_CHARS = 100
# Truncation for raw_ingestions.error_message
MAX_ERROR_CHARS = 1000


@dataclass
class DetectionOutcome:
    """What happened to one ingestion."""

    ingestion_id: str
    status: IngestionStatus
    signals: list[Signal] = field(default_factory=list)
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    error: str | None = None
    status_error: str | None = None  # writing the new status failed
    incomplete_evidence: int = 0


def build_signal(
    narrative: DetectedNarrative, ingestion: RawIngestion
) -> Signal:
    """Turn a detected narrative into an unsaved Signal for an ingestion."""
    return Signal(
        id="",
        project_id=ingestion.project_id,
        source_id=ingestion.source_id,
        headline=narrative.title[:MAX_HEADLINE_CHARS],
        summary=narrative.summary,
        key_points=narrative.key_points,
        status=SignalStatus.NEW,
        momentum=momentum_from_trend(narrative.momentum),
        risk_level=classify_risk(narrative.risk_level),
        tags=[narrative.category],
        metadata={
            "category": narrative.category,
            "confidence_score": narrative.confidence_score,
            "recommended_actions": narrative.recommended_actions,
            "original_risk_level": narrative.risk_level,
            "original_momentum": narrative.momentum,
            "detected_from": ingestion.id,
        },
    )


class SignalDetectionService:
    """
    Runs the AI detector over ingestions and persists the resulting signals.

    Usage:
        service = SignalDetectionService(ingestions, signals, projects, llm)
        outcome = await service.detect(ingestion)
        summary = await service.detect_signals(project_id, lookback_hours=24)
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

    @property
    def is_configured(self) -> bool:
        return self._llm.is_configured

    async def analyze(
        self, ingestion: RawIngestion, project: Project | None = None
    ) -> tuple[ParsedDetection, TokenUsage]:
        """Ask the detector about one ingestion without persisting anything."""
        kind = classify_source(ingestion.source_type, ingestion.url)
        prompt = build_detection_prompt(
            content=ingestion.content,
            source_kind=kind.value,
            url=ingestion.url,
            max_chars=self._config.max_prompt_chars,
            project_name=project.name if project else None,
            instructions=project.signal_instructions if project else None,
        )
        response = await self._llm.complete_json(
            DETECTION_SYSTEM_PROMPT.format(
                max_signals=self._config.max_signals_per_ingestion
            ),
            prompt,
            operation="detection",
        )
        parsed = parse_detection_response(
            response.text, max_signals=self._config.max_signals_per_ingestion
        )
        return parsed, response.usage

    async def detect(
        self, ingestion: RawIngestion, project: Project | None = None
    ) -> DetectionOutcome:
        """
        Detect, persist and record the outcome for one ingestion.

        Args:
            ingestion: A pending ingestion
            project: Owning project (for prompt context), if already loaded

        Returns:
            DetectionOutcome; ``status`` is the ingestion's new status

        Raises:
            StoreUnavailableError: The store connection was lost
        """
        log = logger.bind(ingestion_id=ingestion.id, project_id=ingestion.project_id)
        outcome = DetectionOutcome(
            ingestion_id=ingestion.id, status=IngestionStatus.PENDING_ANALYSIS
        )

        if not self._llm.is_configured:
            # Leave it pending so a later pass can pick it up
            outcome.error = "AI detector not configured"
            log.warning("Skipping detection, AI detector not configured")
            return outcome

        try:
            parsed, outcome.token_usage = await self.analyze(ingestion, project)

            if parsed.parse_error is not None:
                outcome.error = f"Unparseable detector response: {parsed.parse_error}"
            else:
                for narrative in parsed.narratives:
                    signal, linked = await self._signals.create_with_evidence(
                        build_signal(narrative, ingestion),
                        ingestion.id,
                        evidence_metadata={
                            "confidence_score": narrative.confidence_score,
                            "source_url": ingestion.url,
                        },
                    )
                    outcome.signals.append(signal)
                    if not linked:
                        outcome.incomplete_evidence += 1
                        log.warning("Signal evidence incomplete", signal_id=signal.id)
        except StoreUnavailableError:
            raise
        except Exception as e:
            outcome.error = f"{type(e).__name__}: {e}"
            log.warning("Signal detection failed", error=outcome.error)

        try:
            if outcome.error is None:
                changed = await self._ingestions.mark_analyzed(ingestion.id)
                new_status = IngestionStatus.ANALYZED
            else:
                changed = await self._ingestions.mark_failed(
                    ingestion.id, outcome.error[:MAX_ERROR_CHARS]
                )
                new_status = IngestionStatus.ANALYSIS_FAILED
        except StoreUnavailableError:
            raise
        except Exception as e:
            # Row stays pending; the next detection pass retries it
            outcome.status_error = f"{type(e).__name__}: {e}"
            log.warning("Ingestion status update failed", error=outcome.status_error)
            return outcome

        outcome.status = new_status
        if not changed:
            log.warning("Ingestion was no longer pending; status left as is")

        get_metrics().record_analysis(outcome.status.value, len(outcome.signals))
        log.info(
            "Ingestion analyzed",
            status=outcome.status.value,
            signals=len(outcome.signals),
            tokens=outcome.token_usage.total_tokens,
        )
        return outcome

    async def detect_signals(
        self, project_id: str, lookback_hours: int | None = None
    ) -> DetectionSummary:
        """
        Batch pass over a project's pending ingestions.

        Picks up ingestions left pending by an earlier run (detector not
        configured, interrupted invocation), newest first.

        Args:
            project_id: Project to analyze
            lookback_hours: Only ingestions scraped within this window

        Returns:
            DetectionSummary; never raises for detector or parse failures
        """
        lookback = lookback_hours or self._config.detection_lookback_hours
        summary = DetectionSummary(project_id=project_id)

        if not self._llm.is_configured:
            summary.success = False
            summary.error = "AI detector not configured"
            return summary

        project = await self._projects.get_by_id(project_id)
        if project is None:
            summary.success = False
            summary.error = f"Project {project_id} not found"
            return summary

        since = datetime.now(timezone.utc) - timedelta(hours=lookback)
        pending = await self._ingestions.list_pending(
            project_id, since, limit=self._config.max_batch_ingestions
        )
        logger.info(
            "Detection pass started",
            project_id=project_id,
            pending=len(pending),
            lookback_hours=lookback,
        )

        for ingestion in pending:
            outcome = await self.detect(ingestion, project)
            summary.token_usage = summary.token_usage + outcome.token_usage
            if outcome.status is IngestionStatus.ANALYZED:
                summary.ingestions_analyzed += 1
            elif outcome.status is IngestionStatus.ANALYSIS_FAILED:
                summary.ingestions_failed += 1
            summary.signals_detected += len(outcome.signals)
            summary.signal_ids.extend(s.id for s in outcome.signals)

        summary.estimated_cost_usd = summary.token_usage.estimated_cost_usd(
            self._config.prompt_token_price, self._config.completion_token_price
        )
        logger.info(
            "Detection pass finished",
            project_id=project_id,
            analyzed=summary.ingestions_analyzed,
            failed=summary.ingestions_failed,
            signals=summary.signals_detected,
            tokens=summary.token_usage.total_tokens,
            estimated_cost_usd=round(summary.estimated_cost_usd, 6),
        )
        return summary
