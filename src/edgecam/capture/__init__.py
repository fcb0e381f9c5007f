"""
Capture Module
==============

Camera-side collaborators feeding the processing pipeline.

This module provides:
    - normalize_bgr: OpenCV image -> packed-ARGB PixelBuffer
    - CameraSession: Device lifecycle event handlers
    - CameraFrameSource: VideoCapture producer thread
    - SyntheticFrameSource: Deterministic test pattern producer
"""

from edgecam.capture.normalize import FrameDecodeError, normalize_bgr, to_bgr
from edgecam.capture.source import (
    CameraFrameSource,
    CameraSession,
    FrameSource,
    LoggingCameraSession,
    SyntheticFrameSource,
    create_source,
)

__all__ = [
    "FrameDecodeError",
    "normalize_bgr",
    "to_bgr",
    "CameraSession",
    "LoggingCameraSession",
    "FrameSource",
    "CameraFrameSource",
    "SyntheticFrameSource",
    "create_source",
]
