"""Image processing utilities for focuslens.

Shared image conversion and encoding functions used by the capture
and analysis modules.
"""

from __future__ import annotations

import base64
import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/jpeg;base64,"


def bgra_to_bgr(image: np.ndarray) -> np.ndarray:
    """Drop the alpha channel from an mss BGRA screenshot."""
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def encode_jpeg(image: np.ndarray, quality: int = 90) -> bytes:
    """Encode a BGR numpy image as JPEG bytes at the given quality."""
    success, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not success:
        raise ValueError("Failed to encode image to JPEG")
    return buffer.tobytes()


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPEG, PNG, ...) into a BGR numpy array."""
    array = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(array, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Failed to decode image data")
    return image


def image_to_data_uri(jpeg: bytes) -> str:
    """Wrap JPEG bytes in a base64 data URI."""
    return DATA_URI_PREFIX + base64.b64encode(jpeg).decode("utf-8")


def data_uri_to_bytes(uri: str) -> bytes:
    """Extract the payload from a base64 image data URI.

    Raises:
        ValueError: If the string is not a base64 image data URI.
    """
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith("data:image/") or not header.endswith(";base64"):
        raise ValueError("Expected a base64 image data URI")
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def resize_for_mllm(image: np.ndarray, max_dimension: int = 1568) -> np.ndarray:
    """Downscale an image so its longest side fits the model's budget.

    Preserves aspect ratio. Images already within the limit are
    returned unchanged.
    """
    h, w = image.shape[:2]
    largest = max(h, w)

    if largest > max_dimension:
        scale = max_dimension / largest
        new_w = int(w * scale)
        new_h = int(h * scale)
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)

    return image
