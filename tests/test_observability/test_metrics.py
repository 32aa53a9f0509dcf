"""Tests for the Prometheus metrics collector."""

import pytest
from prometheus_client import CollectorRegistry

from signal_pipeline.observability.metrics import MetricsCollector


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry) -> MetricsCollector:
    return MetricsCollector(registry=registry)


def _value(registry: CollectorRegistry, name: str, **labels) -> float | None:
    return registry.get_sample_value(name, labels)


class TestMetricsCollector:
    def test_source_scraped(self, metrics, registry) -> None:
        metrics.record_source_scraped("article", success=True)
        metrics.record_source_scraped("article", success=False)
        metrics.record_source_scraped("article", success=False)

        assert _value(registry, "signal_pipeline_sources_scraped_total", kind="article", status="success") == 1
        assert _value(registry, "signal_pipeline_sources_scraped_total", kind="article", status="failed") == 2

    def test_tier_outcomes(self, metrics, registry) -> None:
        metrics.record_tier("primary", False)
        metrics.record_tier("local-fallback", True)

        assert _value(registry, "signal_pipeline_extraction_tier_total", tier="primary", outcome="failure") == 1
        assert _value(registry, "signal_pipeline_extraction_tier_total", tier="local-fallback", outcome="success") == 1

    def test_analysis_and_signals(self, metrics, registry) -> None:
        metrics.record_analysis("analyzed", signals_created=3)
        metrics.record_analysis("analysis_failed")

        assert _value(registry, "signal_pipeline_analysis_results_total", status="analyzed") == 1
        assert _value(registry, "signal_pipeline_analysis_results_total", status="analysis_failed") == 1
        assert _value(registry, "signal_pipeline_signals_created_total") == 3

    def test_tokens(self, metrics, registry) -> None:
        metrics.record_tokens("detection", 1200, 0)

        assert _value(registry, "signal_pipeline_ai_tokens_total", operation="detection", kind="prompt") == 1200
        assert _value(registry, "signal_pipeline_ai_tokens_total", operation="detection", kind="completion") is None

    def test_external_latency(self, metrics, registry) -> None:
        metrics.record_external_latency("tavily", 3.2)

        assert _value(registry, "signal_pipeline_external_call_seconds_count", service="tavily") == 1
        assert _value(registry, "signal_pipeline_external_call_seconds_bucket", service="tavily", le="5.0") == 1
