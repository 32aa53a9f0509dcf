"""Tests for signal schemas and label mapping."""

import pytest
from pydantic import ValidationError

from signal_pipeline.signals.schemas import (
    DetectedNarrative,
    Momentum,
    MomentumUpdate,
    RiskClassification,
    SignalStatus,
    TokenUsage,
    classify_risk,
    momentum_from_trend,
)


class TestLabelMapping:
    @pytest.mark.parametrize(
        "trend,expected",
        [
            ("accelerating", Momentum.HIGH),
            ("stable", Momentum.MEDIUM),
            ("decelerating", Momentum.LOW),
            ("sideways", Momentum.MEDIUM),
        ],
    )
    def test_momentum_from_trend(self, trend: str, expected: Momentum) -> None:
        assert momentum_from_trend(trend) == expected

    @pytest.mark.parametrize(
        "risk,expected",
        [
            ("critical", RiskClassification.WATCH_CLOSELY),
            ("high", RiskClassification.WATCH_CLOSELY),
            ("medium", RiskClassification.MONITOR),
            ("low", RiskClassification.MONITOR),
        ],
    )
    def test_classify_risk(self, risk: str, expected: RiskClassification) -> None:
        assert classify_risk(risk) == expected


class TestDetectedNarrative:
    def test_labels_lowercased(self) -> None:
        narrative = DetectedNarrative(title="X", risk_level=" CRITICAL ", momentum="Decelerating")
        assert narrative.risk_level == "critical"
        assert narrative.momentum == "decelerating"

    def test_category_lowercased(self) -> None:
        assert DetectedNarrative(title="X", category=" Regulatory ").category == "regulatory"

    def test_blank_category_defaults(self) -> None:
        assert DetectedNarrative(title="X", category="  ").category == "general"

    def test_negative_confidence_clamped(self) -> None:
        assert DetectedNarrative(title="X", confidence_score=-3).confidence_score == 0.0

    def test_null_confidence_defaults(self) -> None:
        assert DetectedNarrative(title="X", confidence_score=None).confidence_score == 0.5

    def test_blank_title_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DetectedNarrative(title="   ")

    def test_key_points_drop_blanks(self) -> None:
        narrative = DetectedNarrative(title="X", key_points=["a", "", None, " b "])
        assert narrative.key_points == ["a", "b"]


class TestMomentumUpdate:
    def test_stabilizing_accepted(self) -> None:
        update = MomentumUpdate(signal_id=42, new_status="STABILIZING", new_momentum="Low")
        assert update.signal_id == "42"
        assert update.new_status == SignalStatus.STABILIZING
        assert update.new_momentum == Momentum.LOW
        assert update.reason == ""

    @pytest.mark.parametrize("status", ["New", "Archived", "Exploding"])
    def test_other_statuses_rejected(self, status: str) -> None:
        with pytest.raises(ValidationError):
            MomentumUpdate(signal_id="s", new_status=status, new_momentum="high")

    def test_unknown_momentum_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MomentumUpdate(signal_id="s", new_status="Accelerating", new_momentum="extreme")


class TestTokenUsage:
    def test_add(self) -> None:
        total = TokenUsage(prompt_tokens=10, completion_tokens=5) + TokenUsage(
            prompt_tokens=1, completion_tokens=2, estimated=True
        )
        assert total.prompt_tokens == 11
        assert total.completion_tokens == 7
        assert total.total_tokens == 18
        assert total.estimated is True

    def test_cost(self) -> None:
        usage = TokenUsage(prompt_tokens=1_000_000, completion_tokens=500_000)
        assert usage.estimated_cost_usd(0.15, 0.60) == pytest.approx(0.45)
