"""Abstract base class for screen capture sources.

All capture implementations must conform to this interface, enabling
the tracker to swap the live screen grabber for file-based or fake
sources in tests without changing the rest of the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

from focuslens.domain.models import CapturedFrame

logger = logging.getLogger(__name__)


class CaptureSource(ABC):
    """Abstract interface for capturing still frames from a live source.

    A source is opened once per recording session. ``capture_frame()``
    may be called before the source has finished initializing; it waits
    for readiness instead of failing. When the underlying stream goes
    away on its own, the source notifies every registered ended
    callback so the owner can tear the session down.

    Example usage::

        async with ScreenCapture(monitor=1) as capture:
            frame = await capture.capture_frame()
    """

    def __init__(self) -> None:
        self._frame_counter: int = 0
        self._is_open: bool = False
        self._ready = asyncio.Event()
        self._ended_callbacks: list[Callable[[], None]] = []

    @property
    def is_open(self) -> bool:
        """Whether the capture source is currently open."""
        return self._is_open

    @property
    def is_ready(self) -> bool:
        """Whether the source knows its geometry and can produce frames."""
        return self._ready.is_set()

    @abstractmethod
    async def open(self) -> None:
        """Acquire the capture stream.

        Raises:
            PermissionDeniedError: If the stream cannot be acquired.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the capture stream.

        Synchronous so it can run in the same turn as a stop request.
        Safe to call multiple times.
        """
        ...

    @abstractmethod
    async def capture_frame(self) -> CapturedFrame:
        """Grab the current frame.

        Raises:
            CaptureError: If the frame cannot be grabbed.
            StreamEndedError: If the stream has gone away.
        """
        ...

    async def wait_ready(self) -> None:
        """Block until the source is ready to produce frames."""
        if not self._is_open:
            raise CaptureError("Capture source is not open")
        await self._ready.wait()

    def add_ended_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback fired when the stream ends unexpectedly.

        Returns:
            A function that removes the callback again.
        """
        self._ended_callbacks.append(callback)

        def remove() -> None:
            if callback in self._ended_callbacks:
                self._ended_callbacks.remove(callback)

        return remove

    def _mark_ready(self) -> None:
        self._ready.set()

    def _mark_closed(self) -> None:
        self._is_open = False
        self._ready.clear()

    def _notify_ended(self) -> None:
        """Mark the source closed and fire the ended callbacks once."""
        was_open = self._is_open
        self._mark_closed()
        if not was_open:
            return
        logger.warning("Capture stream ended unexpectedly")
        for callback in list(self._ended_callbacks):
            callback()

    async def __aenter__(self) -> CaptureSource:
        """Async context manager entry -- opens the capture source."""
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Async context manager exit -- closes the capture source."""
        self.close()


class CaptureError(Exception):
    """Raised when frame capture fails."""

    def __init__(self, message: str, device: str = "") -> None:
        super().__init__(message)
        self.device = device


class PermissionDeniedError(CaptureError):
    """Raised when the screen capture stream cannot be acquired."""


class StreamEndedError(CaptureError):
    """Raised when the capture stream went away while recording."""
