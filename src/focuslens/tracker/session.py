"""Session aggregator owning the mutable state of one recording session."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Callable, Literal

from focuslens.domain.models import (
    AnalysisEntry,
    AnalysisResult,
    CaptureCounters,
    ProgressMetrics,
    Screenshot,
    Session,
    SessionSummary,
    Trigger,
)
from focuslens.triggers.events import ActivityKind

logger = logging.getLogger(__name__)

CAPTURE_FAILED = "Capture Failed"
ANALYSIS_FAILED = "Analysis Failed"

MetricsMode = Literal["latest", "moving_average"]


class SessionAggregator:
    """Accumulates counters, screenshots and analyses for one session.

    Progress metrics follow the latest successful analysis by default
    (``metrics_mode="latest"``). With ``"moving_average"`` they average
    the last ``metrics_window`` successful analyses instead.

    The aggregator also carries the session's single-flight flag,
    ``is_analyzing``, so a capture still running for a stopped session
    can never block or unblock the next one.
    """

    def __init__(
        self,
        goal: str,
        log_display_limit: int = 5,
        metrics_mode: MetricsMode = "latest",
        metrics_window: int = 5,
        on_entry: Callable[[AnalysisEntry], None] | None = None,
    ) -> None:
        if metrics_window < 1:
            raise ValueError("metrics_window must be >= 1")
        self._session = Session(goal=goal)
        self._log_display_limit = log_display_limit
        self._metrics_mode = metrics_mode
        self._recent_results: deque[AnalysisResult] = deque(maxlen=metrics_window)
        self._on_entry = on_entry
        self._closed = False
        self._ended_at: datetime | None = None
        self.is_analyzing = False

    @property
    def session(self) -> Session:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def goal(self) -> str:
        return self._session.goal

    @property
    def counters(self) -> CaptureCounters:
        return self._session.counters

    @property
    def progress(self) -> ProgressMetrics:
        return self._session.progress

    @property
    def screenshots(self) -> list[Screenshot]:
        return self._session.screenshots

    @property
    def analysis_log(self) -> list[AnalysisEntry]:
        return self._session.analysis_log

    @property
    def closed(self) -> bool:
        return self._closed

    def set_goal(self, goal: str) -> None:
        self._session.goal = goal

    # -- counters -----------------------------------------------------------

    def tick(self) -> None:
        """Advance the session clock by one second."""
        if not self._closed:
            self._session.duration_seconds += 1

    def record_activity(self, kind: ActivityKind) -> None:
        if self._closed:
            return
        counters = self._session.counters
        if kind is ActivityKind.CLICK:
            counters.clicks += 1
        elif kind is ActivityKind.KEYSTROKE:
            counters.keystrokes += 1
        elif kind is ActivityKind.WINDOW_CHANGE:
            counters.window_changes += 1

    # -- screenshots and analyses -------------------------------------------

    def add_screenshot(self, screenshot: Screenshot) -> None:
        self._session.screenshots.append(screenshot)

    def record_analysis(self, screenshot: Screenshot, result: AnalysisResult) -> AnalysisEntry:
        """Attach a completed analysis and update the progress metrics."""
        screenshot.attach_analysis(result)
        entry = AnalysisEntry(
            timestamp=screenshot.captured_at,
            trigger=screenshot.trigger,
            productivity=result.productivity_score,
            activity=result.activity,
            insights=list(result.insights),
            analysis=result,
        )
        self._recent_results.append(result)
        self._update_progress(result)
        return self._append(entry)

    def record_failure(self, trigger: Trigger, activity: str, message: str) -> AnalysisEntry:
        """Log a degraded entry: score 0 with the error as sole insight."""
        entry = AnalysisEntry(
            trigger=trigger,
            productivity=0,
            activity=activity,
            insights=[message],
            error=message,
        )
        return self._append(entry)

    def recent_entries(self, limit: int | None = None) -> list[AnalysisEntry]:
        """The newest entries, oldest first, as shown in the feed."""
        limit = self._log_display_limit if limit is None else limit
        if limit <= 0:
            return []
        return list(self._session.analysis_log[-limit:])

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> SessionSummary:
        """Mark the session finished and return its summary."""
        if not self._closed:
            self._closed = True
            self._ended_at = datetime.now()
        return self.summary()

    def summary(self) -> SessionSummary:
        session = self._session
        return SessionSummary(
            session_id=session.session_id,
            started_at=session.started_at,
            ended_at=self._ended_at or datetime.now(),
            duration_seconds=session.duration_seconds,
            screenshot_count=len(session.screenshots),
            analysis_count=sum(1 for s in session.screenshots if s.analyzed),
            goal=session.goal,
            counters=session.counters.model_copy(),
            progress=session.progress.model_copy(),
        )

    def _append(self, entry: AnalysisEntry) -> AnalysisEntry:
        self._session.analysis_log.append(entry)
        if self._on_entry is not None:
            self._on_entry(entry)
        return entry

    def _update_progress(self, result: AnalysisResult) -> None:
        progress = self._session.progress
        if self._metrics_mode == "moving_average":
            results = self._recent_results
            progress.goal_completion = round(sum(r.goal_alignment for r in results) / len(results))
            progress.efficiency = round(sum(r.productivity_score for r in results) / len(results))
        else:
            progress.goal_completion = result.goal_alignment
            progress.efficiency = result.productivity_score
