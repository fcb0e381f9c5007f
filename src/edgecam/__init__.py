"""
EdgeCam
=======

Live camera edge detection with a bounded-latency processing pipeline.

This package captures camera frames, runs a Sobel edge detector on a single
background worker, and hands the newest result to a texture renderer that
draws it through a selectable color effect.

Components:
    - models: PixelBuffer and Effect data types
    - processing: Sobel edge detector
    - pipeline: FrameSlot mailbox and drop-on-busy ProcessingPipeline
    - render: EffectRenderer, texture surfaces and the render loop
    - capture: Camera and synthetic frame sources
    - export: JPEG export and the viewer report payload

Example:
    from edgecam.pipeline import FrameSlot, ProcessingPipeline
    from edgecam.render import EffectRenderer, SoftwareSurface

    slot = FrameSlot()
    renderer = EffectRenderer(slot, SoftwareSurface())
    pipeline = ProcessingPipeline(slot=slot, renderer=renderer)

    pipeline.submit(frame)   # from the camera thread
    renderer.on_draw_frame() # from the render thread
"""

__version__ = "0.1.0"
__author__ = "EdgeCam Project"

__all__ = [
    "__version__",
]
