"""
Frame Normalization
===================

Conversion of camera images into packed-ARGB PixelBuffers.

Design Rules:
    - This is the ONLY place camera pixel formats are interpreted
    - Accepts OpenCV gray, BGR and BGRA uint8 images
    - Fails fast on anything else
"""

import logging

import cv2
import numpy as np

from edgecam.models.pixel_buffer import PixelBuffer


logger = logging.getLogger(__name__)


class FrameDecodeError(Exception):
    """Raised when a camera image cannot be normalized."""
    pass


def normalize_bgr(image: np.ndarray) -> PixelBuffer:
    """
    Convert an OpenCV image to a PixelBuffer.

    Sources without an alpha channel become fully opaque.

    Args:
        image: (H, W) gray, (H, W, 3) BGR or (H, W, 4) BGRA, dtype=uint8

    Returns:
        PixelBuffer with the same dimensions

    Raises:
        FrameDecodeError: If the image is missing, empty, or not a
            supported layout
    """
    if image is None or image.size == 0:
        raise FrameDecodeError("Empty camera image")

    if image.dtype != np.uint8:
        raise FrameDecodeError(f"Invalid dtype: {image.dtype}")

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.ndim == 3 and image.shape[2] == 3:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    elif image.ndim == 3 and image.shape[2] == 4:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    else:
        raise FrameDecodeError(f"Invalid image shape: {image.shape}")

    return PixelBuffer.from_rgba(rgba)


def to_bgr(frame: PixelBuffer) -> np.ndarray:
    """
    Convert a PixelBuffer to an OpenCV BGR image (alpha dropped).

    Args:
        frame: Frame to convert

    Returns:
        (H, W, 3) uint8 BGR array
    """
    return cv2.cvtColor(frame.to_rgba(), cv2.COLOR_RGBA2BGR)
