"""Screen capture implementation using mss.

Grabs the configured monitor at its native resolution and encodes
each frame as JPEG for the analysis client.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import mss
import numpy as np
from mss.exception import ScreenShotError

from focuslens.capture.base import (
    CaptureError,
    CaptureSource,
    PermissionDeniedError,
    StreamEndedError,
)
from focuslens.domain.models import CapturedFrame
from focuslens.utils.imaging import bgra_to_bgr, encode_jpeg, resize_for_mllm

logger = logging.getLogger(__name__)


class ScreenCapture(CaptureSource):
    """Captures the desktop with mss.

    mss handles are bound to the thread that created them, so every
    blocking call runs on a dedicated single-thread executor rather
    than the loop's default pool.
    """

    def __init__(
        self,
        monitor: int = 1,
        jpeg_quality: int = 90,
        max_dimension: int | None = None,
    ) -> None:
        super().__init__()
        self._monitor_index = monitor
        self._jpeg_quality = jpeg_quality
        self._max_dimension = max_dimension
        self._executor: ThreadPoolExecutor | None = None
        self._sct: mss.base.MSSBase | None = None
        self._monitor: dict | None = None

    @property
    def device(self) -> str:
        return f"screen:{self._monitor_index}"

    @property
    def resolution(self) -> tuple[int, int] | None:
        """Native (width, height) of the captured monitor once ready."""
        if self._monitor is None:
            return None
        return self._monitor["width"], self._monitor["height"]

    async def open(self) -> None:
        """Open an mss session on the configured monitor."""
        if self._is_open:
            return
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="focuslens-capture")
        self._is_open = True
        loop = asyncio.get_running_loop()
        try:
            self._sct, self._monitor = await loop.run_in_executor(self._executor, self._open_sync)
        except ScreenShotError as e:
            self._release()
            raise PermissionDeniedError(
                f"Screen capture permission denied or no display available: {e}",
                device=self.device,
            ) from e
        except Exception:
            self._release()
            raise
        self._mark_ready()
        logger.info(
            "Opened %s (%dx%d)",
            self.device, self._monitor["width"], self._monitor["height"],
        )

    def close(self) -> None:
        """Release the mss session."""
        if self._executor is None:
            self._mark_closed()
            return
        self._release()
        logger.info("Released %s", self.device)

    async def capture_frame(self) -> CapturedFrame:
        """Grab the monitor and encode it as JPEG."""
        await self.wait_ready()
        executor, sct = self._executor, self._sct
        if executor is None or sct is None:
            raise CaptureError("Screen capture is not open", device=self.device)
        loop = asyncio.get_running_loop()
        try:
            image, jpeg = await loop.run_in_executor(executor, self._grab_sync, sct, self._monitor)
        except ScreenShotError as e:
            # A grab from an earlier open must not tear down a reopened source
            if executor is self._executor:
                self._notify_ended()
                self._release()
            raise StreamEndedError(f"Screen capture stream ended: {e}", device=self.device) from e
        except RuntimeError as e:
            # Executor shut down underneath us by a concurrent close()
            raise CaptureError(f"Screen capture closed during grab: {e}", device=self.device) from e
        self._frame_counter += 1
        height, width = image.shape[:2]
        return CapturedFrame(
            image=image,
            jpeg=jpeg,
            timestamp=datetime.now(),
            frame_number=self._frame_counter,
            source_device=self.device,
            width=width,
            height=height,
        )

    def _open_sync(self) -> tuple[mss.base.MSSBase, dict]:
        """Create the mss handle (runs on the capture thread)."""
        sct = mss.mss()
        monitors = sct.monitors
        if self._monitor_index >= len(monitors):
            sct.close()
            raise CaptureError(
                f"Monitor {self._monitor_index} not found ({len(monitors) - 1} available)",
                device=self.device,
            )
        return sct, dict(monitors[self._monitor_index])

    def _grab_sync(self, sct: mss.base.MSSBase, monitor: dict) -> tuple[np.ndarray, bytes]:
        """Grab and encode one frame (runs on the capture thread)."""
        shot = sct.grab(monitor)
        image = bgra_to_bgr(np.asarray(shot))
        if self._max_dimension:
            image = resize_for_mllm(image, max_dimension=self._max_dimension)
        return image, encode_jpeg(image, quality=self._jpeg_quality)

    def _release(self) -> None:
        self._mark_closed()
        executor, sct = self._executor, self._sct
        self._executor = None
        self._sct = None
        if executor is None:
            return
        if sct is not None:
            executor.submit(sct.close)
        executor.shutdown(wait=False)
