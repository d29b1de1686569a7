"""Screenshot analysis module for focuslens.

Provides a client-agnostic interface for sending screenshots to a
vision-capable LLM and a two-stage parser that always yields a
structured productivity assessment.

Public API:
    AnalysisClient -- Abstract base class
    parse_analysis -- Pure reply parser (JSON, then heuristics)
    OpenAIAnalysisClient -- Live client with a client-held key
    ProxyAnalysisClient -- Client for the focuslens analysis proxy
    FakeAnalysisClient -- Canned replies for offline use
"""

from focuslens.analysis.base import (
    AnalysisClient,
    AnalysisError,
    UpstreamError,
    build_prompt,
)
from focuslens.analysis.fake import FakeAnalysisClient
from focuslens.analysis.parser import parse_analysis

__all__ = [
    "AnalysisClient",
    "AnalysisError",
    "UpstreamError",
    "build_prompt",
    "parse_analysis",
    "FakeAnalysisClient",
    "OpenAIAnalysisClient",
    "ProxyAnalysisClient",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "OpenAIAnalysisClient":
        from focuslens.analysis.openai import OpenAIAnalysisClient
        return OpenAIAnalysisClient
    if name == "ProxyAnalysisClient":
        from focuslens.analysis.proxy import ProxyAnalysisClient
        return ProxyAnalysisClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
