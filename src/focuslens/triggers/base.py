"""Abstract base class for user input sources.

An input source watches one kind of user activity (mouse, keyboard,
window focus) and forwards events to its subscribers on the event
loop thread. The trigger scheduler subscribes while recording and
drops every subscription when recording stops.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

from focuslens.triggers.events import InputEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[InputEvent], None]


class Subscription:
    """Handle returned by :meth:`InputSource.subscribe`."""

    def __init__(self, source: InputSource, handler: EventHandler) -> None:
        self._source = source
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Detach the handler. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._source._unsubscribe(self._handler)


class InputSource(ABC):
    """Abstract interface for a source of user input events.

    ``start()`` and ``stop()`` are synchronous so a stop request can
    tear everything down within a single turn of the event loop.
    Implementations backed by OS threads must hand events over with
    :meth:`_emit_threadsafe`.
    """

    name: str = "input"

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: EventHandler) -> Subscription:
        self._handlers.append(handler)
        return Subscription(self, handler)

    @abstractmethod
    def start(self) -> None:
        """Begin watching for input.

        Raises:
            InputSourceError: If the platform hook is unavailable.
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop watching. Safe to call multiple times."""
        ...

    def _unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _emit(self, event: InputEvent) -> None:
        for handler in list(self._handlers):
            handler(event)

    def _emit_threadsafe(self, event: InputEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._emit, event)


class InputSourceError(Exception):
    """Raised when an input source cannot hook into the platform."""

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source
