"""
Data models for signals, evidence links and detector output.

Detector output models are permissive on input (the model is not always
tidy) but normalise everything they accept: enumerations are lower-cased,
nulls become defaults and the confidence score is clamped to [0, 1].
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class SignalStatus(str, Enum):
    NEW = "New"
    ACCELERATING = "Accelerating"
    STABILIZING = "Stabilizing"
    ARCHIVED = "Archived"  # terminal, set outside the pipeline


OPEN_SIGNAL_STATUSES = (
    SignalStatus.NEW,
    SignalStatus.ACCELERATING,
    SignalStatus.STABILIZING,
)


class Momentum(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskClassification(str, Enum):
    WATCH_CLOSELY = "watch_closely"
    MONITOR = "monitor"


class EvidenceType(str, Enum):
    DETECTED = "detected"
    MOMENTUM = "momentum"
    MANUAL = "manual"


def momentum_from_trend(trend: str) -> Momentum:
    """Map a detector trend label (accelerating/stable/decelerating) to momentum."""
    if trend == "accelerating":
        return Momentum.HIGH
    if trend == "decelerating":
        return Momentum.LOW
    return Momentum.MEDIUM


def classify_risk(risk_level: str) -> RiskClassification:
    """Critical and high risk narratives need close watching."""
    if risk_level in ("critical", "high"):
        return RiskClassification.WATCH_CLOSELY
    return RiskClassification.MONITOR


def _as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    raise ValueError("expected a list of strings")


class DetectedNarrative(BaseModel):
    """One narrative object returned by the detector."""

    title: str = Field(..., min_length=1)
    category: str = "general"
    risk_level: str = "medium"
    momentum: str = "stable"
    summary: str = ""
    key_points: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    confidence_score: float = 0.5

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("category", "summary", mode="before")
    @classmethod
    def _none_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if info.field_name == "category":
            text = "" if v is None else str(v).strip().lower()
            return text or "general"
        return "" if v is None else str(v).strip()

    @field_validator("risk_level", "momentum", mode="before")
    @classmethod
    def _normalise_label(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return "medium" if info.field_name == "risk_level" else "stable"
        return str(v).strip().lower()

    @field_validator("key_points", "recommended_actions", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any) -> list[str]:
        return _as_string_list(v)

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _default_confidence(cls, v: Any) -> Any:
        return 0.5 if v is None else v

    @field_validator("confidence_score")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return max(0.0, min(1.0, v))


class MomentumUpdate(BaseModel):
    """One status/momentum change proposed by the momentum pass."""

    signal_id: str = Field(..., min_length=1)
    new_status: SignalStatus
    new_momentum: Momentum
    reason: str = ""
    supporting_ingestion_ids: list[str] = Field(default_factory=list)

    @field_validator("signal_id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return str(v).strip() if v is not None else v

    @field_validator("new_status", mode="before")
    @classmethod
    def _normalise_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().capitalize()
            if v not in (SignalStatus.ACCELERATING.value, SignalStatus.STABILIZING.value):
                raise ValueError("momentum pass may only set Accelerating or Stabilizing")
        return v

    @field_validator("new_momentum", mode="before")
    @classmethod
    def _normalise_momentum(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("reason", mode="before")
    @classmethod
    def _reason(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("supporting_ingestion_ids", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class TokenUsage(BaseModel):
    """Token counts reported (or estimated) for AI calls."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    estimated: bool = False

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            estimated=self.estimated or other.estimated,
        )

    def estimated_cost_usd(self, prompt_price: float, completion_price: float) -> float:
        """Cost given per-million-token prices."""
        return (
            self.prompt_tokens / 1_000_000 * prompt_price
            + self.completion_tokens / 1_000_000 * completion_price
        )


@dataclass
class Signal:
    """A persisted narrative signal."""

    id: str
    project_id: str
    headline: str
    summary: str = ""
    key_points: list[str] = field(default_factory=list)
    status: SignalStatus = SignalStatus.NEW
    momentum: Momentum = Momentum.MEDIUM
    risk_level: RiskClassification = RiskClassification.MONITOR
    tags: list[str] = field(default_factory=list)
    source_id: str | None = None
    detected_at: datetime | None = None
    updated_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class DetectionSummary(BaseModel):
    """Result of a batch detection pass over one project."""

    success: bool = True
    project_id: str
    ingestions_analyzed: int = 0
    ingestions_failed: int = 0
    signals_detected: int = 0
    signal_ids: list[str] = Field(default_factory=list)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    estimated_cost_usd: float = 0.0
    error: str | None = None


class MomentumSummary(BaseModel):
    """Result of a momentum pass over one project."""

    success: bool = True
    project_id: str
    signals_analyzed: int = 0
    signals_updated: int = 0
    signals_unchanged: int = 0
    evidence_linked: int = 0
    updated_signal_ids: list[str] = Field(default_factory=list)
    analysis_notes: str = ""
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    estimated_cost_usd: float = 0.0
    error: str | None = None
