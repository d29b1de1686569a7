"""Screen Capture module for focuslens.

Turns a live screen into single still frames on demand. The abstract
base class allows alternative capture implementations (e.g. fakes in
tests, file-based sources).

Public API:
    CaptureSource -- Abstract base class
    ScreenCapture -- mss desktop implementation
"""

from focuslens.capture.base import (
    CaptureError,
    CaptureSource,
    PermissionDeniedError,
    StreamEndedError,
)

__all__ = [
    "CaptureSource",
    "CaptureError",
    "PermissionDeniedError",
    "StreamEndedError",
    "ScreenCapture",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "ScreenCapture":
        from focuslens.capture.screen import ScreenCapture
        return ScreenCapture
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
