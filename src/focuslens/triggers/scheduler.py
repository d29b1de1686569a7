"""Trigger scheduler deciding when a new screenshot is requested.

Turns a fixed timer and raw input events into capture triggers:

* periodic -- every ``periodic_interval`` seconds while running
* click -- every mouse press
* keystrokes -- once per ``keystroke_threshold`` character keys
* focus_leave / focus_return -- home window focus transitions

Everything the scheduler acquires in ``start()`` (subscriptions, input
sources, timer tasks) is tracked in lists that ``stop()`` drains, so
repeated start/stop cycles never leak listeners or timers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from focuslens.domain.models import Trigger
from focuslens.triggers.base import InputSource, InputSourceError, Subscription
from focuslens.triggers.events import (
    ActivityKind,
    ClickEvent,
    FocusEvent,
    InputEvent,
    KeyEvent,
)

logger = logging.getLogger(__name__)


class TriggerScheduler:
    """Fires capture triggers from timers and input sources."""

    def __init__(
        self,
        sources: Sequence[InputSource],
        on_trigger: Callable[[Trigger], None],
        on_activity: Callable[[ActivityKind], None] | None = None,
        periodic_interval: float = 30.0,
        keystroke_threshold: int = 20,
    ) -> None:
        if periodic_interval <= 0:
            raise ValueError("periodic_interval must be > 0")
        if keystroke_threshold <= 0:
            raise ValueError("keystroke_threshold must be > 0")
        self._sources = list(sources)
        self._on_trigger = on_trigger
        self._on_activity = on_activity
        self._periodic_interval = periodic_interval
        self._keystroke_threshold = keystroke_threshold
        self._keystroke_count = 0
        self._running = False
        self._subscriptions: list[Subscription] = []
        self._started_sources: list[InputSource] = []
        self._timers: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def keystroke_count(self) -> int:
        """Qualifying keystrokes since the last keystrokes trigger."""
        return self._keystroke_count

    @property
    def timer_count(self) -> int:
        return sum(1 for task in self._timers if not task.done())

    @property
    def subscription_count(self) -> int:
        return sum(1 for sub in self._subscriptions if sub.active)

    def start(self) -> None:
        """Subscribe to every input source and start the periodic timer.

        Must be called from a running event loop.
        """
        if self._running:
            return
        self._running = True
        self._keystroke_count = 0

        for source in self._sources:
            subscription = source.subscribe(self._handle_event)
            try:
                source.start()
            except InputSourceError as e:
                subscription.cancel()
                logger.warning("Input source %s unavailable, its triggers are disabled: %s", source.name, e)
                continue
            self._subscriptions.append(subscription)
            self._started_sources.append(source)

        self.every(self._periodic_interval, lambda: self._fire(Trigger.PERIODIC))
        logger.info(
            "Trigger scheduler started (interval=%.0fs, keystroke threshold=%d, sources=%s)",
            self._periodic_interval,
            self._keystroke_threshold,
            ", ".join(s.name for s in self._started_sources) or "none",
        )

    def every(self, seconds: float, callback: Callable[[], None]) -> asyncio.Task:
        """Run ``callback`` every ``seconds`` until the scheduler stops."""
        if not self._running:
            raise RuntimeError("Scheduler is not running")
        task = asyncio.get_running_loop().create_task(self._run_timer(seconds, callback))
        self._timers.append(task)
        return task

    def stop(self) -> None:
        """Cancel timers, drop subscriptions and stop input sources.

        Synchronous and idempotent.
        """
        was_running = self._running
        self._running = False
        self._keystroke_count = 0

        for task in self._timers:
            task.cancel()
        self._timers.clear()

        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

        for source in self._started_sources:
            source.stop()
        self._started_sources.clear()

        if was_running:
            logger.info("Trigger scheduler stopped")

    async def _run_timer(self, seconds: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(seconds)
            try:
                callback()
            except Exception:
                logger.exception("Timer callback failed")

    def _handle_event(self, event: InputEvent) -> None:
        if not self._running:
            return
        if isinstance(event, ClickEvent):
            self._record(ActivityKind.CLICK)
            self._fire(Trigger.CLICK)
        elif isinstance(event, KeyEvent):
            if not event.is_character:
                return
            self._keystroke_count += 1
            self._record(ActivityKind.KEYSTROKE)
            if self._keystroke_count >= self._keystroke_threshold:
                self._keystroke_count = 0
                self._fire(Trigger.KEYSTROKES)
        elif isinstance(event, FocusEvent):
            self._record(ActivityKind.WINDOW_CHANGE)
            self._fire(Trigger.FOCUS_RETURN if event.focused else Trigger.FOCUS_LEAVE)
        else:
            logger.warning("Unknown input event type: %s", type(event))

    def _record(self, kind: ActivityKind) -> None:
        if self._on_activity is not None:
            self._on_activity(kind)

    def _fire(self, trigger: Trigger) -> None:
        logger.debug("Trigger fired: %s", trigger.value)
        self._on_trigger(trigger)
