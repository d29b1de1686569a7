"""Tests for the imaging and logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest

from focuslens.config.settings import LoggingConfig
from focuslens.utils.imaging import (
    bgra_to_bgr,
    data_uri_to_bytes,
    decode_image,
    encode_jpeg,
    image_to_data_uri,
    resize_for_mllm,
)
from focuslens.utils.logging import setup_logging


class TestImaging:
    def test_bgra_to_bgr(self) -> None:
        bgra = np.zeros((10, 20, 4), dtype=np.uint8)
        assert bgra_to_bgr(bgra).shape == (10, 20, 3)
        bgr = np.zeros((10, 20, 3), dtype=np.uint8)
        assert bgra_to_bgr(bgr) is bgr

    def test_jpeg_encode_decode(self, sample_image: np.ndarray) -> None:
        jpeg = encode_jpeg(sample_image, quality=90)
        assert jpeg[:2] == b"\xff\xd8"
        assert decode_image(jpeg).shape == sample_image.shape

    def test_decode_garbage(self) -> None:
        with pytest.raises(ValueError):
            decode_image(b"not an image")

    def test_data_uri(self, sample_jpeg: bytes) -> None:
        uri = image_to_data_uri(sample_jpeg)
        assert uri.startswith("data:image/jpeg;base64,")
        assert data_uri_to_bytes(uri) == sample_jpeg

    @pytest.mark.parametrize(
        "uri", ["plain text", "data:text/plain;base64,aGk=", "data:image/png,rawbytes", "data:image/png;base64,@@@"],
    )
    def test_bad_data_uri(self, uri: str) -> None:
        with pytest.raises(ValueError):
            data_uri_to_bytes(uri)

    def test_resize_keeps_aspect(self) -> None:
        image = np.zeros((1000, 2000, 3), dtype=np.uint8)
        assert resize_for_mllm(image, max_dimension=500).shape == (250, 500, 3)
        small = np.zeros((100, 200, 3), dtype=np.uint8)
        assert resize_for_mllm(small, max_dimension=500) is small


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_logger(self):
        package_logger = logging.getLogger("focuslens")
        level, handlers = package_logger.level, list(package_logger.handlers)
        yield
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            if handler not in handlers:
                handler.close()
        for handler in handlers:
            package_logger.addHandler(handler)
        package_logger.setLevel(level)

    def test_repeated_setup_does_not_duplicate(self) -> None:
        setup_logging(LoggingConfig(level="DEBUG"))
        package_logger = setup_logging(LoggingConfig(level="WARNING"))
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING

    def test_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "focuslens.log"
        package_logger = setup_logging(LoggingConfig(level="INFO", file=str(log_file)))
        logging.getLogger("focuslens.tracker").info("session started")
        for handler in package_logger.handlers:
            handler.flush()
        assert "session started" in log_file.read_text()
