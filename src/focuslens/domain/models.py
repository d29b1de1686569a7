"""Core domain models for the focuslens system.

These models represent the data flowing through the tracker: captured
frames from the screen, analysis results parsed from the vision model,
the per-session log and counters, and the payloads handed to external
collaborators (telemetry, remote persistence).
"""

from __future__ import annotations

import enum
import math
import uuid
from datetime import datetime
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SCORE = 50
DEFAULT_ACTIVITY = "General Work"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Trigger(str, enum.Enum):
    """Reason a screenshot capture was initiated."""

    PERIODIC = "periodic"
    CLICK = "click"
    KEYSTROKES = "keystrokes"
    FOCUS_RETURN = "focus_return"
    FOCUS_LEAVE = "focus_leave"


class ScoreBand(str, enum.Enum):
    """Display band for a 0-100 score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def for_score(cls, score: int) -> ScoreBand:
        if score > 80:
            return cls.HIGH
        if score > 60:
            return cls.MEDIUM
        return cls.LOW


def clamp_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    """Coerce an arbitrary model-provided value into an integer in [0, 100].

    Numbers and numeric strings (optionally suffixed with '%') are rounded
    and clamped. Anything else, including booleans and NaN, yields the
    neutral default.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        text = value.strip().rstrip("%").strip()
        try:
            value = float(text)
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return default
        return 100 if value > 0 else 0
    return max(0, min(100, int(round(value))))


def _as_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


# ---------------------------------------------------------------------------
# Capture Models
# ---------------------------------------------------------------------------


class CapturedFrame(BaseModel):
    """A single frame grabbed from the screen.

    Carries both the decoded image (for local processing) and the JPEG
    encoding that is sent to the analysis client.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: np.ndarray = Field(description="Raw image data as BGR numpy array (OpenCV format)")
    jpeg: bytes = Field(description="JPEG encoding of the image")
    timestamp: datetime = Field(default_factory=datetime.now)
    frame_number: int = Field(ge=0, description="Sequential frame counter")
    source_device: str = Field(default="screen")
    width: int = Field(ge=0)
    height: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Analysis Models
# ---------------------------------------------------------------------------


class AnalysisResult(BaseModel):
    """Structured productivity assessment of one screenshot.

    Scores are always integers in [0, 100] no matter what the model
    returned; see :func:`clamp_score`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    productivity_score: int = Field(default=DEFAULT_SCORE, alias="productivityScore")
    activity: str = Field(default=DEFAULT_ACTIVITY)
    insights: list[str] = Field(default_factory=list)
    focus_level: int = Field(default=DEFAULT_SCORE, alias="focusLevel")
    goal_alignment: int = Field(default=DEFAULT_SCORE, alias="goalAlignment")
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("productivity_score", "focus_level", "goal_alignment", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)

    @field_validator("activity", mode="before")
    @classmethod
    def _activity(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return DEFAULT_ACTIVITY
        return str(value).strip()

    @field_validator("insights", "recommendations", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> list[str]:
        return _as_text_list(value)


class AnalysisEntry(BaseModel):
    """One record in the session's append-only analysis log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    trigger: Trigger
    productivity: int = Field(ge=0, le=100)
    activity: str
    insights: list[str] = Field(default_factory=list)
    error: str | None = Field(default=None)
    analysis: AnalysisResult | None = Field(default=None)

    @property
    def band(self) -> ScoreBand:
        return ScoreBand.for_score(self.productivity)

    @property
    def headline(self) -> str:
        return self.insights[0] if self.insights else "No insights available"


# ---------------------------------------------------------------------------
# Persistence payload
# ---------------------------------------------------------------------------


class RecordedAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    productivity_score: int = Field(alias="productivityScore", ge=0, le=100)
    activity: str
    insights: list[str] = Field(default_factory=list)


class ScreenshotRecord(BaseModel):
    """Payload shape accepted by the remote screenshot store.

    focuslens only builds this payload; storing it belongs to the
    external persistence API.
    """

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    trigger: Trigger
    goal: str
    captured_at: datetime = Field(alias="capturedAt")
    file_size: int = Field(alias="fileSize", ge=0)
    image_path: str | None = Field(default=None, alias="imagePath")
    ai_analysis: RecordedAnalysis | None = Field(default=None, alias="aiAnalysis")


# ---------------------------------------------------------------------------
# Session Models
# ---------------------------------------------------------------------------


class Screenshot(BaseModel):
    """A captured screenshot owned by the session until analysis completes."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    captured_at: datetime = Field(default_factory=datetime.now)
    trigger: Trigger
    image: bytes = Field(repr=False, description="JPEG encoded image")
    analyzed: bool = Field(default=False)
    analysis: AnalysisResult | None = Field(default=None)
    path: str | None = Field(default=None, description="Where the JPEG was written, if saved")

    def attach_analysis(self, result: AnalysisResult) -> None:
        self.analysis = result
        self.analyzed = True

    def to_record(self, session_id: str, goal: str) -> ScreenshotRecord:
        """Build the remote persistence payload for this screenshot."""
        recorded = None
        if self.analysis is not None:
            recorded = RecordedAnalysis(
                productivity_score=self.analysis.productivity_score,
                activity=self.analysis.activity,
                insights=list(self.analysis.insights),
            )
        return ScreenshotRecord(
            session_id=session_id,
            trigger=self.trigger,
            goal=goal,
            captured_at=self.captured_at,
            file_size=len(self.image),
            image_path=self.path,
            ai_analysis=recorded,
        )


class CaptureCounters(BaseModel):
    clicks: int = Field(default=0, ge=0)
    keystrokes: int = Field(default=0, ge=0)
    window_changes: int = Field(default=0, ge=0)


class ProgressMetrics(BaseModel):
    goal_completion: int = Field(default=0, ge=0, le=100)
    efficiency: int = Field(default=0, ge=0, le=100)


class Session(BaseModel):
    """Mutable state of one recording session."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = Field(default_factory=datetime.now)
    duration_seconds: int = Field(default=0, ge=0)
    goal: str
    counters: CaptureCounters = Field(default_factory=CaptureCounters)
    screenshots: list[Screenshot] = Field(default_factory=list)
    analysis_log: list[AnalysisEntry] = Field(default_factory=list)
    progress: ProgressMetrics = Field(default_factory=ProgressMetrics)


class SessionSummary(BaseModel):
    """End-of-session summary sent to the telemetry sink."""

    session_id: str
    started_at: datetime
    ended_at: datetime
    duration_seconds: int = Field(ge=0)
    screenshot_count: int = Field(ge=0)
    analysis_count: int = Field(ge=0)
    goal: str
    counters: CaptureCounters
    progress: ProgressMetrics
