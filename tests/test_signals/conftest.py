"""Shared fixtures for signal detection tests."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from signal_pipeline.signals.config import SignalsConfig
from signal_pipeline.signals.llm_client import LLMResponse
from signal_pipeline.signals.schemas import Signal, TokenUsage
from tests.conftest import PROJECT_ID, SOURCE_ID


def llm_response(payload, prompt_tokens: int = 1000, completion_tokens: int = 200) -> LLMResponse:
    """LLMResponse wrapping a dict (serialized) or raw text."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return LLMResponse(
        text=text,
        usage=TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def stored(signal: Signal, signal_id: str = "sig-1") -> Signal:
    """The signal as the repository would return it after INSERT ... RETURNING."""
    signal.id = signal_id
    signal.detected_at = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    return signal


NARRATIVE = {
    "title": "HBM shortage spreads to mid-range GPUs",
    "category": "Supply",
    "risk_level": "High",
    "momentum": "Accelerating",
    "summary": "Memory allocation is squeezing mid-range boards.",
    "key_points": ["Allocation cut", "Prices up"],
    "recommended_actions": ["Watch distributor pricing"],
    "confidence_score": 0.82,
}


@pytest.fixture
def signals_config() -> SignalsConfig:
    return SignalsConfig()


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.is_configured = True
    llm.complete_json = AsyncMock(return_value=llm_response({"signals": []}))
    return llm


@pytest.fixture
def mock_signals_repo() -> AsyncMock:
    repo = AsyncMock()
    counter = {"n": 0}

    async def create_with_evidence(signal, ingestion_id, evidence_metadata=None):
        counter["n"] += 1
        return stored(signal, f"sig-{counter['n']}"), True

    repo.create_with_evidence = AsyncMock(side_effect=create_with_evidence)
    repo.link_evidence = AsyncMock(return_value=True)
    repo.update_momentum = AsyncMock(return_value=True)
    repo.list_open = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_ingestions_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.mark_analyzed = AsyncMock(return_value=True)
    repo.mark_failed = AsyncMock(return_value=True)
    repo.list_pending = AsyncMock(return_value=[])
    repo.list_recent = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_projects_repo(sample_project) -> AsyncMock:
    repo = AsyncMock()
    repo.get_by_id = AsyncMock(return_value=sample_project)
    return repo


@pytest.fixture
def signal_row() -> dict:
    """A dict mimicking an asyncpg Record for a signal."""
    return {
        "id": "sig-1",
        "project_id": PROJECT_ID,
        "source_id": SOURCE_ID,
        "headline": "HBM shortage spreads",
        "summary": "Summary",
        "key_points": ["a", "b"],
        "status": "New",
        "momentum": "high",
        "risk_level": "watch_closely",
        "tags": ["supply"],
        "detected_at": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        "metadata": {"confidence_score": 0.82},
    }
