"""Prompt templates for the AI signal detector."""

import json
from typing import Any

DETECTION_SYSTEM_PROMPT = """You are a narrative monitoring analyst.
Your job is to spot EMERGING narratives in content captured from social
networks, forums and news sites, so that analysts know what needs attention.

Rules:
1. Report only distinct narratives; merge related content into one signal.
2. Prefer narratives that are gaining traction over settled facts.
3. Ignore noise and content unrelated to the project instructions.
4. Report at most {max_signals} signals.
5. Every signal must be clearly supported by the analysed content.

Respond ONLY with valid JSON, no prose and no markdown, using this schema:
{{
  "signals": [
    {{
      "title": "short headline, at most 100 characters",
      "category": "one-word topic category",
      "risk_level": "critical | high | medium | low",
      "momentum": "accelerating | stable | decelerating",
      "summary": "2-3 sentences explaining the narrative and why it matters",
      "key_points": ["..."],
      "recommended_actions": ["..."],
      "confidence_score": 0.0
    }}
  ]
}}

If nothing relevant is found respond with {{"signals": []}}."""

DETECTION_PROMPT = """PROJECT: {project_name}
PROJECT INSTRUCTIONS: {instructions}
SOURCE TYPE: {source_kind}
SOURCE URL: {url}

CONTENT:
{content}"""

MOMENTUM_SYSTEM_PROMPT = """You are a narrative momentum analyst.
You receive signals that were detected earlier and the content captured
since. Decide for each signal whether it is gaining traction
("Accelerating") or has peaked and is levelling off ("Stabilizing").

Evidence of acceleration: more frequent mentions, spread to new sources or
platforms, more urgent tone, new angles, prominent voices joining in.
Evidence of stabilization: steady or falling mentions, repetition without
new angles, attention moving elsewhere.

Only update a signal when the content gives clear evidence. Do NOT invent
new signals. Cite the ids of the content items that support each update.

Respond ONLY with valid JSON using this schema:
{
  "signal_updates": [
    {
      "signal_id": "id of an existing signal",
      "new_status": "Accelerating | Stabilizing",
      "new_momentum": "high | medium | low",
      "reason": "one sentence",
      "supporting_ingestion_ids": ["..."]
    }
  ],
  "unchanged_signals": ["ids of signals without clear change"],
  "analysis_notes": "short note on the analysis"
}"""

MOMENTUM_PROMPT = """PROJECT: {project_name}

EXISTING SIGNALS:
{signals}

CONTENT CAPTURED IN THE LAST {lookback_hours} HOURS:
{ingestions}"""


def truncate(text: str, limit: int) -> str:
    """Cut text to ``limit`` characters."""
    return text if len(text) <= limit else text[:limit]


def build_detection_prompt(
    content: str,
    source_kind: str,
    url: str,
    max_chars: int,
    project_name: str | None = None,
    instructions: str | None = None,
) -> str:
    return DETECTION_PROMPT.format(
        project_name=project_name or "(unnamed)",
        instructions=instructions or "Identify emerging narratives that need attention.",
        source_kind=source_kind,
        url=url,
        content=truncate(content, max_chars),
    )


def build_momentum_prompt(
    signals: list[dict[str, Any]],
    ingestions: list[dict[str, Any]],
    lookback_hours: int,
    project_name: str | None = None,
) -> str:
    return MOMENTUM_PROMPT.format(
        project_name=project_name or "(unnamed)",
        signals=json.dumps(signals, ensure_ascii=False, indent=1),
        lookback_hours=lookback_hours,
        ingestions=json.dumps(ingestions, ensure_ascii=False, indent=1),
    )
