"""The productivity tracker that orchestrates a recording session.

Ties together screen capture, trigger scheduling, screenshot analysis
and the session aggregator.

State machine::

    Idle --start()--> Recording --stop() or stream ended--> Idle

Only one capture+analysis runs at a time. A trigger that arrives while
one is in flight is dropped, never queued.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path
from typing import Callable, Sequence

from focuslens.analysis.base import AnalysisClient
from focuslens.capture.base import CaptureError, CaptureSource
from focuslens.domain.models import AnalysisEntry, Screenshot, SessionSummary, Trigger
from focuslens.tracker.session import (
    ANALYSIS_FAILED,
    CAPTURE_FAILED,
    MetricsMode,
    SessionAggregator,
)
from focuslens.tracker.telemetry import LoggingTelemetrySink, TelemetrySink
from focuslens.triggers.base import InputSource
from focuslens.triggers.scheduler import TriggerScheduler

logger = logging.getLogger(__name__)


class TrackerState(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"


class ProductivityTracker:
    """Records one session at a time and scores its screenshots.

    Example usage::

        tracker = ProductivityTracker(
            capture=ScreenCapture(),
            analyzer=OpenAIAnalysisClient(api_key="sk-..."),
            input_sources=[PynputInputSource(), WindowFocusSource()],
            goal="Finish the quarterly report",
        )
        await tracker.start()
        ...
        summary = tracker.stop()
    """

    def __init__(
        self,
        capture: CaptureSource,
        analyzer: AnalysisClient,
        input_sources: Sequence[InputSource] = (),
        goal: str = "Complete project documentation",
        telemetry: TelemetrySink | None = None,
        periodic_interval: float = 30.0,
        keystroke_threshold: int = 20,
        log_display_limit: int = 5,
        metrics_mode: MetricsMode = "latest",
        metrics_window: int = 5,
        screenshot_dir: Path | str | None = None,
        on_entry: Callable[[AnalysisEntry], None] | None = None,
    ) -> None:
        self._capture = capture
        self._analyzer = analyzer
        self._input_sources = list(input_sources)
        self._goal = goal
        self._telemetry = telemetry or LoggingTelemetrySink()
        self._periodic_interval = periodic_interval
        self._keystroke_threshold = keystroke_threshold
        self._log_display_limit = log_display_limit
        self._metrics_mode = metrics_mode
        self._metrics_window = metrics_window
        self._screenshot_dir = Path(screenshot_dir) if screenshot_dir else None
        self._on_entry = on_entry

        self._state = TrackerState.IDLE
        self._aggregator: SessionAggregator | None = None
        self._last_session: SessionAggregator | None = None
        self._scheduler: TriggerScheduler | None = None
        self._remove_ended_callback: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task] = set()
        self._dropped_triggers = 0
        self._stopped = asyncio.Event()
        self._stopped.set()

    # -- state --------------------------------------------------------------

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is TrackerState.RECORDING

    @property
    def is_analyzing(self) -> bool:
        return self._aggregator is not None and self._aggregator.is_analyzing

    @property
    def goal(self) -> str:
        return self._goal

    @property
    def session(self) -> SessionAggregator | None:
        """The live session, or None while idle."""
        return self._aggregator

    @property
    def last_session(self) -> SessionAggregator | None:
        """The live session, or the most recently stopped one."""
        return self._aggregator or self._last_session

    @property
    def scheduler(self) -> TriggerScheduler | None:
        return self._scheduler

    @property
    def dropped_triggers(self) -> int:
        return self._dropped_triggers

    def set_goal(self, goal: str) -> None:
        """Change the goal used for this and future sessions."""
        self._goal = goal
        if self._aggregator is not None:
            self._aggregator.set_goal(goal)

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Acquire the capture stream and begin recording.

        Raises:
            PermissionDeniedError: If the screen cannot be captured. The
                tracker stays idle.
        """
        if self._state is TrackerState.RECORDING:
            return
        try:
            await self._capture.open()
        except CaptureError as e:
            logger.error("Screen capture permission required for progress tracking: %s", e)
            self._capture.close()
            raise

        aggregator = SessionAggregator(
            goal=self._goal,
            log_display_limit=self._log_display_limit,
            metrics_mode=self._metrics_mode,
            metrics_window=self._metrics_window,
            on_entry=self._on_entry,
        )
        scheduler = TriggerScheduler(
            sources=self._input_sources,
            on_trigger=self.handle_trigger,
            on_activity=aggregator.record_activity,
            periodic_interval=self._periodic_interval,
            keystroke_threshold=self._keystroke_threshold,
        )
        self._aggregator = aggregator
        self._scheduler = scheduler
        self._dropped_triggers = 0
        self._state = TrackerState.RECORDING
        self._stopped.clear()
        self._remove_ended_callback = self._capture.add_ended_callback(self._on_stream_ended)

        scheduler.start()
        scheduler.every(1.0, aggregator.tick)
        logger.info("Recording session %s started (goal: %s)", aggregator.session_id, self._goal)

    def stop(self) -> SessionSummary | None:
        """Stop recording and emit the session summary.

        Synchronous and idempotent: timers, listeners and the capture
        stream are released before this returns. An analysis already in
        flight finishes, but its result is discarded.

        Returns:
            The summary of the session that was stopped, or None if the
            tracker was already idle.
        """
        if self._state is TrackerState.IDLE:
            return None
        self._state = TrackerState.IDLE

        if self._scheduler is not None:
            self._scheduler.stop()
        if self._remove_ended_callback is not None:
            self._remove_ended_callback()
            self._remove_ended_callback = None
        self._capture.close()

        aggregator = self._aggregator
        self._aggregator = None
        self._last_session = aggregator
        summary = aggregator.close()
        self._telemetry.emit(summary)
        self._stopped.set()

        logger.info(
            "Recording session %s stopped after %ds (%d screenshots, %d dropped triggers)",
            summary.session_id, summary.duration_seconds,
            summary.screenshot_count, self._dropped_triggers,
        )
        return summary

    async def wait_stopped(self) -> None:
        """Block until the current session (if any) has stopped."""
        await self._stopped.wait()

    async def aclose(self) -> None:
        """Stop recording, let in-flight work finish and close clients."""
        self.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._analyzer.aclose()
        await self._telemetry.aclose()

    async def __aenter__(self) -> ProductivityTracker:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.aclose()

    # -- triggers -----------------------------------------------------------

    def handle_trigger(self, trigger: Trigger) -> bool:
        """Start a capture+analysis for ``trigger`` unless one is in flight.

        Returns:
            True if a capture was started, False if the trigger was dropped.
        """
        aggregator = self._aggregator
        if self._state is not TrackerState.RECORDING or aggregator is None:
            return False
        if aggregator.is_analyzing:
            self._dropped_triggers += 1
            logger.debug("Dropping %s trigger, analysis in progress", trigger.value)
            return False

        aggregator.is_analyzing = True
        task = asyncio.get_running_loop().create_task(
            self._capture_and_analyze(aggregator, trigger)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def _is_live(self, aggregator: SessionAggregator) -> bool:
        return (
            self._state is TrackerState.RECORDING
            and aggregator is self._aggregator
            and not aggregator.closed
        )

    def _on_stream_ended(self) -> None:
        logger.warning("Screen sharing ended, stopping session")
        self.stop()

    async def _capture_and_analyze(self, aggregator: SessionAggregator, trigger: Trigger) -> None:
        try:
            try:
                frame = await self._capture.capture_frame()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Screenshot capture failed: %s", e)
                if self._is_live(aggregator):
                    aggregator.record_failure(trigger, CAPTURE_FAILED, f"Screenshot capture failed: {e}")
                return

            if not self._is_live(aggregator):
                return

            screenshot = Screenshot(trigger=trigger, image=frame.jpeg, captured_at=frame.timestamp)
            aggregator.add_screenshot(screenshot)
            if self._screenshot_dir is not None:
                await self._save_screenshot(aggregator.session_id, screenshot)

            try:
                result = await self._analyzer.analyze(screenshot.image, aggregator.goal)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("AI analysis failed: %s", e)
                if self._is_live(aggregator):
                    aggregator.record_failure(trigger, ANALYSIS_FAILED, f"AI analysis failed: {e}")
                return

            if not self._is_live(aggregator):
                logger.info("Discarding analysis for stopped session %s", aggregator.session_id)
                return

            entry = aggregator.record_analysis(screenshot, result)
            logger.info(
                "[%s] %s: productivity %d%%", trigger.value, entry.activity, entry.productivity,
            )
        finally:
            aggregator.is_analyzing = False

    async def _save_screenshot(self, session_id: str, screenshot: Screenshot) -> None:
        path = self._screenshot_dir / f"{session_id}-{screenshot.id}.jpg"
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, _write_file, path, screenshot.image)
        except OSError as e:
            logger.warning("Could not save screenshot to %s: %s", path, e)
            return
        screenshot.path = str(path)


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
