"""Abstract base class for screenshot analysis clients.

All analysis client implementations must conform to this interface,
enabling the tracker to swap between the live vision API, the
server-side proxy, and a fake client without changing anything else.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from focuslens.analysis.parser import parse_analysis
from focuslens.domain.models import AnalysisResult

logger = logging.getLogger(__name__)


DEFAULT_PROMPT_TEMPLATE = """Analyze this work session screenshot. The user's goal is: "{goal}".

Please provide analysis in this exact JSON format:
{{
  "productivityScore": <number 0-100>,
  "activity": "<activity type>",
  "insights": ["<insight 1>", "<insight 2>"],
  "focusLevel": <number 0-100>,
  "goalAlignment": <number 0-100>,
  "recommendations": ["<recommendation 1>", "<recommendation 2>"]
}}
"""


def build_prompt(goal: str, template: str | None = None) -> str:
    """Render the analysis prompt for the given goal."""
    return (template or DEFAULT_PROMPT_TEMPLATE).format(goal=goal)


class AnalysisClient(ABC):
    """Abstract interface for turning a screenshot into an AnalysisResult.

    Calls are single-flight: the tracker never issues a second
    ``analyze()`` while one is outstanding, so implementations need no
    internal locking.

    Example usage::

        async with OpenAIAnalysisClient(api_key="sk-...") as client:
            result = await client.analyze(frame.jpeg, "Write the report")
    """

    provider: str = "base"

    @abstractmethod
    async def analyze(self, image: bytes, goal: str) -> AnalysisResult:
        """Assess a JPEG screenshot against the user's goal.

        Raises:
            UpstreamError: If the remote endpoint rejects the request.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Safe to call multiple times."""

    def _parse_response(self, raw_response: str | None) -> AnalysisResult:
        result = parse_analysis(raw_response)
        logger.debug(
            "%s analysis: score=%d activity=%s",
            self.provider, result.productivity_score, result.activity,
        )
        return result

    async def __aenter__(self) -> AnalysisClient:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.aclose()


class AnalysisError(Exception):
    """Raised when a screenshot cannot be analyzed."""

    def __init__(self, message: str, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider


class UpstreamError(AnalysisError):
    """Raised when the analysis endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, provider: str = "") -> None:
        super().__init__(message, provider=provider)
        self.status_code = status_code
