"""
Export Module
=============

Side-channel export of the latest rendered frame.

This module provides:
    - encode_jpeg: PixelBuffer -> JPEG bytes
    - FrameExporter: Writes snapshots to disk and builds viewer reports
    - FrameReport: Viewer payload model
"""

from edgecam.export.exporter import ExportError, FrameExporter, encode_jpeg, to_data_uri
from edgecam.export.report import FrameReport, FrameStatus

__all__ = [
    "ExportError",
    "FrameExporter",
    "encode_jpeg",
    "to_data_uri",
    "FrameReport",
    "FrameStatus",
]
