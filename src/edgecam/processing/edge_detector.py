"""
Edge Detector
=============

Sobel gradient magnitude edge detection on packed-ARGB frames.

For each interior pixel the 8 neighbours are converted to Rec.601 luma,
the 3x3 Sobel kernels give the horizontal and vertical gradients, and the
Euclidean magnitude (clamped to 255) becomes an opaque gray output pixel:

    gx = (tr + 2*mr + br) - (tl + 2*ml + bl)
    gy = (bl + 2*bm + br) - (tl + 2*tm + tr)
    magnitude = min(255, round(sqrt(gx^2 + gy^2)))

Border pixels are left transparent black (0x00000000); the 3x3 operator is
undefined there. Frames narrower or shorter than 3 pixels therefore come
back entirely transparent black.

Key Design Decisions:
    - Pure function: no state, same input gives bit-identical output
    - Vectorized over the whole frame with numpy slicing
    - Rounding is half-up, matching integer pixel pipelines
"""

import logging
from typing import Protocol

import numpy as np

from edgecam.models.pixel_buffer import OPAQUE, PixelBuffer


logger = logging.getLogger(__name__)


# Rec.601 luma weights
LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114

MAX_MAGNITUDE = 255


class EdgeDetector(Protocol):
    """
    Protocol for frame transforms run by the pipeline worker.

    Any callable taking and returning a PixelBuffer qualifies; `detect`
    is the production implementation.
    """

    def __call__(self, frame: PixelBuffer) -> PixelBuffer:
        ...


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round non-negative floats to the nearest integer, ties upward."""
    return np.floor(values + 0.5)


def to_luma(pixels: np.ndarray) -> np.ndarray:
    """
    Convert packed ARGB pixels to integer luma in [0, 255].

    Args:
        pixels: uint32 array of any shape

    Returns:
        int32 array of the same shape
    """
    r = ((pixels >> 16) & 0xFF).astype(np.float64)
    g = ((pixels >> 8) & 0xFF).astype(np.float64)
    b = (pixels & 0xFF).astype(np.float64)

    luma = round_half_up(LUMA_R * r + LUMA_G * g + LUMA_B * b)
    return np.clip(luma, 0, 255).astype(np.int32)


def detect(frame: PixelBuffer) -> PixelBuffer:
    """
    Compute the Sobel edge magnitude image of a frame.

    Args:
        frame: Input frame, any valid dimensions

    Returns:
        New PixelBuffer with identical dimensions. Interior pixels are
        opaque gray (R=G=B=magnitude), border pixels transparent black.
    """
    width, height = frame.width, frame.height
    output = np.zeros((height, width), dtype=np.uint32)

    if width < 3 or height < 3:
        return PixelBuffer(width=width, height=height, pixels=output)

    gray = to_luma(frame.as_grid())

    top_left = gray[:-2, :-2]
    top_mid = gray[:-2, 1:-1]
    top_right = gray[:-2, 2:]
    mid_left = gray[1:-1, :-2]
    mid_right = gray[1:-1, 2:]
    bottom_left = gray[2:, :-2]
    bottom_mid = gray[2:, 1:-1]
    bottom_right = gray[2:, 2:]

    gx = (top_right + 2 * mid_right + bottom_right) - (
        top_left + 2 * mid_left + bottom_left
    )
    gy = (bottom_left + 2 * bottom_mid + bottom_right) - (
        top_left + 2 * top_mid + top_right
    )

    magnitude = round_half_up(np.sqrt((gx * gx + gy * gy).astype(np.float64)))
    magnitude = np.minimum(magnitude, MAX_MAGNITUDE).astype(np.uint32)

    output[1:-1, 1:-1] = OPAQUE | (magnitude << 16) | (magnitude << 8) | magnitude

    return PixelBuffer(width=width, height=height, pixels=output)
