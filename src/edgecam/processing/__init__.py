"""
Processing Module
=================

Per-frame image transforms run on the pipeline worker.

This module provides:
    - detect: Sobel gradient magnitude edge detection
    - to_luma: Rec.601 luma conversion of packed pixels
"""

from edgecam.processing.edge_detector import EdgeDetector, detect, to_luma

__all__ = [
    "EdgeDetector",
    "detect",
    "to_luma",
]
