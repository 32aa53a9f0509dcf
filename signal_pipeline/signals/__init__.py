"""Signal detection, evidence linking and momentum analysis."""

from signal_pipeline.signals.config import SignalsConfig
from signal_pipeline.signals.llm_client import SignalLLMClient
from signal_pipeline.signals.momentum import MomentumService
from signal_pipeline.signals.parsing import parse_detection_response, parse_momentum_response
from signal_pipeline.signals.repository import SignalsRepository
from signal_pipeline.signals.schemas import (
    DetectedNarrative,
    DetectionSummary,
    EvidenceType,
    Momentum,
    MomentumSummary,
    RiskClassification,
    Signal,
    SignalStatus,
    TokenUsage,
)
from signal_pipeline.signals.service import DetectionOutcome, SignalDetectionService

__all__ = [
    "DetectedNarrative",
    "DetectionOutcome",
    "DetectionSummary",
    "EvidenceType",
    "Momentum",
    "MomentumService",
    "MomentumSummary",
    "RiskClassification",
    "Signal",
    "SignalDetectionService",
    "SignalLLMClient",
    "SignalStatus",
    "SignalsConfig",
    "SignalsRepository",
    "TokenUsage",
    "parse_detection_response",
    "parse_momentum_response",
]
