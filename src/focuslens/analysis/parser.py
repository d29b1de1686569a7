"""Two-stage parser for vision model replies.

The model is asked for a bare JSON object but frequently wraps it in
prose or markdown, or ignores the format altogether. ``parse_analysis``
first tries the greedy brace-delimited JSON match; when that fails it
falls back to keyword heuristics so the caller always receives a fully
populated :class:`AnalysisResult`.
"""

from __future__ import annotations

import json
import logging
import re

from focuslens.domain.models import DEFAULT_ACTIVITY, DEFAULT_SCORE, AnalysisResult

logger = logging.getLogger(__name__)

ACTIVITY_VOCABULARY = ("coding", "writing", "research", "communication", "design", "planning")
RECOMMENDATION_MARKERS = ("recommend", "suggest", "should")
PLACEHOLDER_INSIGHT = "AI analysis completed"

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def parse_analysis(content: str | None) -> AnalysisResult:
    """Turn free-form model output into an AnalysisResult. Never raises."""
    text = content or ""
    data = _extract_json(text)
    if data is not None:
        return AnalysisResult.model_validate(data)
    logger.debug("No JSON object in model reply, using heuristic extraction")
    return parse_heuristic(text)


def parse_heuristic(text: str) -> AnalysisResult:
    """Keyword-based fallback used when the reply holds no usable JSON."""
    productivity = extract_number(text, "productivity")
    focus = extract_number(text, "focus")
    goal = extract_number(text, "goal")
    return AnalysisResult(
        productivity_score=DEFAULT_SCORE if productivity is None else productivity,
        activity=extract_activity(text),
        insights=extract_insights(text) or [PLACEHOLDER_INSIGHT],
        focus_level=DEFAULT_SCORE if focus is None else focus,
        goal_alignment=DEFAULT_SCORE if goal is None else goal,
        recommendations=extract_recommendations(text),
    )


def extract_number(text: str, keyword: str) -> int | None:
    """Return the 1-3 digit number following ``keyword``, if any."""
    match = re.search(rf"{re.escape(keyword)}[:\s]*([0-9]{{1,3}})", text, re.IGNORECASE)
    return int(match.group(1)) if match else None


def extract_activity(text: str) -> str:
    lowered = text.lower()
    for activity in ACTIVITY_VOCABULARY:
        if activity in lowered:
            return activity.capitalize()
    return DEFAULT_ACTIVITY


def extract_insights(text: str, limit: int = 3) -> list[str]:
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text)]
    return [s for s in sentences if len(s) > 10][:limit]


def extract_recommendations(text: str, limit: int = 2) -> list[str]:
    sentences = _SENTENCE_SPLIT.split(text)
    matches = [
        s.strip() for s in sentences
        if any(marker in s.lower() for marker in RECOMMENDATION_MARKERS)
    ]
    return matches[:limit]


def _extract_json(text: str) -> dict | None:
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.debug("Model reply JSON did not parse: %s", e)
        return None
    if not isinstance(data, dict):
        return None
    return data
