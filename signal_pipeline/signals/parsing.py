"""
Tolerant parsing of detector output.

The detector is asked for bare JSON but sometimes wraps it in markdown
fences or surrounding prose. Parsing never raises: a response that cannot
be read yields no narratives plus a ``parse_error`` describing why, while a
well-formed empty list yields no narratives and no error. Callers decide
what each case means for the ingestion; both create zero signals.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from signal_pipeline.signals.schemas import DetectedNarrative, MomentumUpdate

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")


@dataclass
class ParsedDetection:
    narratives: list[DetectedNarrative] = field(default_factory=list)
    parse_error: str | None = None
    skipped: int = 0


@dataclass
class ParsedMomentum:
    updates: list[MomentumUpdate] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    notes: str = ""
    parse_error: str | None = None
    skipped: int = 0


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json fence and a trailing ``` fence."""
    return _FENCE_RE.sub("", text).strip()


def load_json_object(raw: str | None) -> tuple[dict[str, Any] | None, str | None]:
    """
    Decode a JSON object from model output.

    Returns:
        (object, None) on success or (None, reason) on failure
    """
    if raw is None or not raw.strip():
        return None, "empty response"

    text = strip_code_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        # Retry on the outermost braces in case of surrounding prose
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None, f"invalid JSON: {e.msg}"
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as inner:
            return None, f"invalid JSON: {inner.msg}"

    if not isinstance(data, dict):
        return None, f"expected a JSON object, got {type(data).__name__}"
    return data, None


def parse_detection_response(raw: str | None, max_signals: int | None = None) -> ParsedDetection:
    """
    Parse a detection response into narratives.

    Args:
        raw: Model output text
        max_signals: Keep at most this many valid narratives

    Returns:
        ParsedDetection; ``parse_error`` is set when the response was unusable
    """
    data, error = load_json_object(raw)
    if error is None and not isinstance(data.get("signals"), list):
        error = "response has no 'signals' list"

    if error is not None:
        logger.warning(f"Unparseable detector response: {error}")
        return ParsedDetection(parse_error=error)

    result = ParsedDetection()
    for item in data["signals"]:
        if not isinstance(item, dict):
            result.skipped += 1
            continue
        try:
            result.narratives.append(DetectedNarrative.model_validate(item))
        except ValidationError as e:
            result.skipped += 1
            logger.warning(f"Skipping invalid narrative: {e.error_count()} validation errors")

    if max_signals is not None:
        result.narratives = result.narratives[:max_signals]

    if not result.narratives:
        logger.info("Detector returned no narratives")
    return result


def parse_momentum_response(raw: str | None) -> ParsedMomentum:
    """Parse a momentum response into status/momentum updates."""
    data, error = load_json_object(raw)
    if error is None and not isinstance(data.get("signal_updates", []), list):
        error = "'signal_updates' is not a list"

    if error is not None:
        logger.warning(f"Unparseable momentum response: {error}")
        return ParsedMomentum(parse_error=error)

    unchanged = data.get("unchanged_signals")
    result = ParsedMomentum(
        notes=str(data.get("analysis_notes") or ""),
        unchanged=[str(s) for s in unchanged if s] if isinstance(unchanged, list) else [],
    )
    for item in data.get("signal_updates") or []:
        if not isinstance(item, dict):
            result.skipped += 1
            continue
        try:
            result.updates.append(MomentumUpdate.model_validate(item))
        except ValidationError as e:
            result.skipped += 1
            logger.warning(f"Skipping invalid momentum update: {e.error_count()} validation errors")
    return result
