"""
Test Configuration
==================

Pytest fixtures and test configuration for EdgeCam.
"""

import os
import tempfile

# Settings load on import; point them at headless components first.
os.environ.setdefault("EDGECAM_CAPTURE_SOURCE", "synthetic")
os.environ.setdefault("EDGECAM_RENDER_BACKEND", "software")
os.environ.setdefault(
    "EDGECAM_EXPORT_PATH",
    os.path.join(tempfile.mkdtemp(prefix="edgecam-test-"), "processed_frame.jpg"),
)

import numpy as np
import pytest

from edgecam.models.pixel_buffer import PixelBuffer


WHITE = 0xFFFFFFFF
BLACK = 0xFF000000


@pytest.fixture
def white_3x3():
    """3x3 opaque white frame."""
    return PixelBuffer.filled(3, 3, WHITE)


@pytest.fixture
def split_3x3():
    """3x3 frame: left column black, middle and right columns white."""
    return PixelBuffer(
        width=3,
        height=3,
        pixels=[
            BLACK, WHITE, WHITE,
            BLACK, WHITE, WHITE,
            BLACK, WHITE, WHITE,
        ],
    )


@pytest.fixture
def random_frame():
    """Reproducible 8x6 random opaque frame."""
    rng = np.random.default_rng(1234)
    rgba = rng.integers(0, 256, size=(6, 8, 4), dtype=np.uint8)
    rgba[..., 3] = 255
    return PixelBuffer.from_rgba(rgba)


@pytest.fixture
def sample_rgba():
    """1x2 RGBA image: (100, 150, 200) and a half-transparent dark pixel."""
    return np.array(
        [[[100, 150, 200, 255], [10, 20, 30, 128]]],
        dtype=np.uint8,
    )
