"""
Pipeline Module
===============

Frame admission and hand-off between the camera, worker and renderer.

This module provides:
    - FrameSlot: Single-slot, overwrite-on-write, take-and-clear mailbox
    - ProcessingPipeline: Drop-on-busy admission into one worker thread
    - PipelineMetrics: Counters and frame rate for observability

Example:
    slot = FrameSlot()
    pipeline = ProcessingPipeline(slot=slot, on_frame_ready=loop.request_redraw)

    # Camera thread
    pipeline.submit(frame)

    # Render thread
    frame = slot.take_latest()
"""

from edgecam.pipeline.frame_slot import FrameSlot
from edgecam.pipeline.pipeline import PipelineMetrics, ProcessingPipeline

__all__ = [
    "FrameSlot",
    "ProcessingPipeline",
    "PipelineMetrics",
]
