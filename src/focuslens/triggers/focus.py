"""Window focus watcher.

The window that is active when recording starts (normally the terminal
running focuslens) is the home window. Polling the active window title
reports a FocusEvent each time focus leaves or returns to it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from focuslens.triggers.base import InputSource, InputSourceError
from focuslens.triggers.events import FocusEvent

logger = logging.getLogger(__name__)

TitleProvider = Callable[[], "str | None"]


def _pygetwindow_title_provider() -> TitleProvider:
    try:
        import pygetwindow
    except (ImportError, NotImplementedError) as e:
        # pygetwindow raises NotImplementedError at import on unsupported platforms
        raise InputSourceError(f"pygetwindow unavailable: {e}", source="focus") from e
    provider = getattr(pygetwindow, "getActiveWindowTitle", None)
    if provider is None:
        raise InputSourceError("pygetwindow cannot read the active window here", source="focus")
    return provider


class WindowFocusSource(InputSource):
    """Emits FocusEvent when the active window leaves or returns home."""

    name = "focus"

    def __init__(
        self,
        poll_interval: float = 0.5,
        title_provider: TitleProvider | None = None,
    ) -> None:
        super().__init__()
        self._poll_interval = poll_interval
        self._title_provider = title_provider
        self._task: asyncio.Task | None = None
        self._home_title: str | None = None
        self._focused = True

    @property
    def home_title(self) -> str | None:
        return self._home_title

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_polling:
            return
        if self._title_provider is None:
            self._title_provider = _pygetwindow_title_provider()
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._poll())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._loop = None

    async def _poll(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            self._home_title = await loop.run_in_executor(None, self._title_provider)
        except Exception as e:
            logger.warning("Could not read the home window, focus triggers disabled: %s", e)
            return
        self._focused = True
        logger.info("Watching focus of home window %r", self._home_title)
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                title = await loop.run_in_executor(None, self._title_provider)
            except Exception as e:
                logger.warning("Could not read the active window: %s", e)
                continue
            focused = title == self._home_title
            if focused != self._focused:
                self._focused = focused
                logger.debug("Focus %s (active window %r)", "returned" if focused else "left", title)
                self._emit(FocusEvent(focused=focused, window_title=title))
