"""Offline analysis client returning canned model replies.

Selected with ``analysis.mode = "fake"``. The canned text goes through
the same parser as live replies, so demos and tests exercise the real
parsing path without network access.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Sequence

from focuslens.analysis.base import AnalysisClient
from focuslens.domain.models import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_RESPONSES = (
    '{"productivityScore": 82, "activity": "Coding", '
    '"insights": ["Editor is focused on the project source", "No distracting tabs open"], '
    '"focusLevel": 85, "goalAlignment": 78, '
    '"recommendations": ["Commit the current changes before switching tasks"]}',
    "The user appears to be doing research in a browser. Productivity: 64. "
    "Focus: 70. Goal: 55. You should close unrelated tabs.",
    "Here is the analysis:\n```json\n"
    '{"productivityScore": 45, "activity": "Communication", '
    '"insights": ["Chat application in the foreground"], "focusLevel": 40, '
    '"goalAlignment": 30, "recommendations": ["Batch messages into a later break"]}\n```',
)


class FakeAnalysisClient(AnalysisClient):
    """Cycles through canned replies, optionally after a delay."""

    provider = "fake"

    def __init__(self, responses: Sequence[str] | None = None, delay: float = 0.0) -> None:
        self._responses = list(responses or DEFAULT_RESPONSES)
        if not self._responses:
            raise ValueError("FakeAnalysisClient needs at least one response")
        self._cycle = itertools.cycle(self._responses)
        self._delay = delay
        self.calls: list[tuple[int, str]] = []

    async def analyze(self, image: bytes, goal: str) -> AnalysisResult:
        self.calls.append((len(image), goal))
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._parse_response(next(self._cycle))
