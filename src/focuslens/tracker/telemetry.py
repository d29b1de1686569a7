"""Telemetry sinks receiving end-of-session summaries.

Delivery is fire-and-forget: ``emit()`` never blocks the caller and
never raises on delivery failure.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import httpx

from focuslens.domain.models import SessionSummary

logger = logging.getLogger(__name__)


class TelemetrySink(ABC):
    """Abstract receiver of session summaries."""

    @abstractmethod
    def emit(self, summary: SessionSummary) -> None:
        ...

    async def aclose(self) -> None:
        """Flush pending deliveries and release resources."""


class LoggingTelemetrySink(TelemetrySink):
    """Writes each summary to the log."""

    def emit(self, summary: SessionSummary) -> None:
        logger.info("Session ended: %s", summary.model_dump_json())


class HttpTelemetrySink(TelemetrySink):
    """POSTs each summary as JSON to a collector URL."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def emit(self, summary: SessionSummary) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping summary for session %s", summary.session_id)
            return
        task = loop.create_task(self._deliver(summary))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, summary: SessionSummary) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        try:
            resp = await self._client.post(self._url, content=summary.model_dump_json(),
                                           headers={"Content-Type": "application/json"})
            resp.raise_for_status()
            logger.debug("Delivered summary for session %s", summary.session_id)
        except httpx.HTTPError as e:
            logger.warning("Failed to deliver summary for session %s: %s", summary.session_id, e)

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None
