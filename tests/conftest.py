"""Shared test fixtures for the focuslens test suite.

Provides common fixtures used across the unit tests: sample images and
frames, analysis results, and fake capture/input sources that stand in
for the screen and the OS input hooks.
"""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from focuslens.capture.base import CaptureError
from focuslens.domain.models import AnalysisResult, CapturedFrame
from focuslens.utils.imaging import encode_jpeg
from tests.fakes import FakeCapture, FakeInputSource


# ---------------------------------------------------------------------------
# Frame / Image Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_image() -> np.ndarray:
    """A minimal 120x160 gray image for testing."""
    return np.full((120, 160, 3), 128, dtype=np.uint8)


@pytest.fixture
def sample_jpeg(sample_image: np.ndarray) -> bytes:
    return encode_jpeg(sample_image)


@pytest.fixture
def sample_frame(sample_image: np.ndarray, sample_jpeg: bytes) -> CapturedFrame:
    return CapturedFrame(
        image=sample_image,
        jpeg=sample_jpeg,
        timestamp=datetime(2025, 1, 1, 12, 0, 0),
        frame_number=1,
        source_device="test",
        width=160,
        height=120,
    )


# ---------------------------------------------------------------------------
# Analysis Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_result() -> AnalysisResult:
    return AnalysisResult(
        productivity_score=82,
        activity="Coding",
        insights=["Editor in focus"],
        focus_level=85,
        goal_alignment=70,
        recommendations=["Take a short break soon"],
    )


# ---------------------------------------------------------------------------
# Source Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_capture(sample_image: np.ndarray, sample_jpeg: bytes) -> FakeCapture:
    return FakeCapture(jpeg=sample_jpeg, image=sample_image)


@pytest.fixture
def fake_input() -> FakeInputSource:
    return FakeInputSource()


@pytest.fixture
def capture_error() -> CaptureError:
    return CaptureError("canvas context unavailable", device="fake")
