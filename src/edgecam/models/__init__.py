"""
Data Models
===========

Value types shared by every pipeline stage.

Models:
    - PixelBuffer: Owned packed-ARGB snapshot of one frame
    - Effect: Post-processing color effect selector
"""

from edgecam.models.pixel_buffer import MalformedBufferError, PixelBuffer
from edgecam.models.effect import Effect

__all__ = [
    "PixelBuffer",
    "MalformedBufferError",
    "Effect",
]
