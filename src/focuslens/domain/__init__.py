"""Domain models for focuslens.

This package contains the core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from focuslens.domain.models import (
    AnalysisEntry,
    AnalysisResult,
    CaptureCounters,
    CapturedFrame,
    ProgressMetrics,
    ScoreBand,
    Screenshot,
    ScreenshotRecord,
    Session,
    SessionSummary,
    Trigger,
    clamp_score,
)

__all__ = [
    "AnalysisEntry",
    "AnalysisResult",
    "CaptureCounters",
    "CapturedFrame",
    "ProgressMetrics",
    "ScoreBand",
    "Screenshot",
    "ScreenshotRecord",
    "Session",
    "SessionSummary",
    "Trigger",
    "clamp_score",
]
