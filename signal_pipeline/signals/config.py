"""Configuration for signal detection and momentum analysis.

All settings can be overridden via SIGNALS_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SignalsConfig(BaseSettings):
    """Model selection, prompt limits and pass windows for the AI detector.

    Example:
        SIGNALS_OPENAI_MODEL=gpt-4o
        SIGNALS_MAX_PROMPT_CHARS=12000
    """

    model_config = SettingsConfigDict(
        env_prefix="SIGNALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Model
    openai_model: str = Field(default="gpt-4o-mini")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    llm_timeout: float = Field(default=60.0, ge=5.0, le=300.0)

    # Per-ingestion detection
    max_prompt_chars: int = Field(
        default=8000,
        ge=500,
        description="Ingestion content is truncated to this many characters",
    )
    max_signals_per_ingestion: int = Field(default=10, ge=1, le=50)

    # Batch detection pass
    detection_lookback_hours: int = Field(default=24, ge=1, le=24 * 30)
    max_batch_ingestions: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Most recent pending ingestions handled per detection pass",
    )

    # Momentum pass
    momentum_lookback_hours: int = Field(default=48, ge=1, le=24 * 30)
    momentum_min_signal_age_hours: int = Field(
        default=24,
        ge=0,
        description="Signals younger than this are left to settle before re-analysis",
    )
    max_momentum_signals: int = Field(default=50, ge=1, le=500)
    max_momentum_ingestions: int = Field(default=100, ge=1, le=1000)
    momentum_excerpt_chars: int = Field(
        default=1500,
        ge=100,
        description="Per-ingestion excerpt length in the momentum prompt",
    )

    # Cost estimation (USD per million tokens)
    prompt_token_price: float = Field(default=0.15, ge=0.0)
    completion_token_price: float = Field(default=0.60, ge=0.0)
