"""
Prometheus metrics for the ingestion and signal pipeline.

Defines and exposes metrics for:
- Source scrape outcomes per source kind
- Extraction tier outcomes (which fallback tier won, which failed)
- Ingestion outcomes (stored, duplicate, rejected by the word floor)
- Signal detection results and AI token consumption
- External call latency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from signal_pipeline.config.settings import get_settings

logger = logging.getLogger(__name__)

# External calls routinely take tens of seconds
LATENCY_BUCKETS = (0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the signal pipeline.

    Usage:
        metrics = get_metrics()
        metrics.record_source_scraped("article", success=True)
        metrics.record_ingestion("duplicate")
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self._registry = registry or REGISTRY

        self.sources_scraped = Counter(
            "signal_pipeline_sources_scraped_total",
            "Source scrape attempts",
            ["kind", "status"],  # status: success, failed
            registry=self._registry,
        )

        self.extraction_tier_outcomes = Counter(
            "signal_pipeline_extraction_tier_total",
            "Article extraction attempts per fallback tier",
            ["tier", "outcome"],  # outcome: success, failure
            registry=self._registry,
        )

        self.ingestions = Counter(
            "signal_pipeline_ingestions_total",
            "Content items offered to the ingestion store",
            ["outcome"],  # inserted, duplicate, rejected
            registry=self._registry,
        )

        self.signals_created = Counter(
            "signal_pipeline_signals_created_total",
            "Signals persisted by detection",
            registry=self._registry,
        )

        self.analysis_results = Counter(
            "signal_pipeline_analysis_results_total",
            "Ingestion analysis outcomes",
            ["status"],  # analyzed, analysis_failed
            registry=self._registry,
        )

        self.momentum_updates = Counter(
            "signal_pipeline_momentum_updates_total",
            "Signals whose momentum or status changed",
            registry=self._registry,
        )

        self.ai_tokens = Counter(
            "signal_pipeline_ai_tokens_total",
            "Tokens consumed by the AI detector",
            ["operation", "kind"],  # kind: prompt, completion
            registry=self._registry,
        )

        self.external_latency = Histogram(
            "signal_pipeline_external_call_seconds",
            "Latency of calls to external services",
            ["service"],
            buckets=LATENCY_BUCKETS,
            registry=self._registry,
        )

    def start_server(self, port: int | None = None) -> None:
        """Start the Prometheus HTTP endpoint."""
        port = port or get_settings().metrics_port
        start_http_server(port, registry=self._registry)
        logger.info(f"Metrics server started on port {port}")

    def record_source_scraped(self, kind: str, success: bool) -> None:
        self.sources_scraped.labels(
            kind=kind, status="success" if success else "failed"
        ).inc()

    def record_tier(self, tier: str, success: bool) -> None:
        self.extraction_tier_outcomes.labels(
            tier=tier, outcome="success" if success else "failure"
        ).inc()

    def record_ingestion(self, outcome: str) -> None:
        self.ingestions.labels(outcome=outcome).inc()

    def record_analysis(self, status: str, signals_created: int = 0) -> None:
        """
        Record the result of analyzing one ingestion.

        Args:
            status: Final ingestion status
            signals_created: Number of signals persisted for it
        """
        self.analysis_results.labels(status=status).inc()
        if signals_created:
            self.signals_created.inc(signals_created)

    def record_tokens(self, operation: str, prompt: int, completion: int) -> None:
        if prompt:
            self.ai_tokens.labels(operation=operation, kind="prompt").inc(prompt)
        if completion:
            self.ai_tokens.labels(operation=operation, kind="completion").inc(completion)

    def record_external_latency(self, service: str, seconds: float) -> None:
        self.external_latency.labels(service=service).observe(seconds)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
