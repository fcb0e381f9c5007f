"""
Render Module
=============

Texture rendering of processed frames with selectable color effects.

This module provides:
    - EffectRenderer: Takes frames from the FrameSlot and draws them
    - SoftwareSurface / GLSurface: CPU and moderngl drawing targets
    - RenderLoop: Render thread driven by redraw requests
    - apply_effect: CPU version of the effect shader
"""

from edgecam.render.effects import apply_effect
from edgecam.render.loop import RenderLoop
from edgecam.render.renderer import EffectRenderer
from edgecam.render.surface import (
    GLSurface,
    SoftwareSurface,
    TextureSurface,
    create_surface,
)

__all__ = [
    "EffectRenderer",
    "RenderLoop",
    "TextureSurface",
    "SoftwareSurface",
    "GLSurface",
    "create_surface",
    "apply_effect",
]
