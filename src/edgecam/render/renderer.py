"""
Effect Renderer
===============

Consumes processed frames from the FrameSlot and draws them through the
active color effect.

Lifecycle (driven by the render thread, never self-scheduled):
    on_surface_created(surface)  once the drawing context exists
    on_draw_frame()              once per redraw request
    release()                    when the render thread stops

Design Rules:
    - take_latest() consumes the frame; a frame is uploaded at most once
    - An empty slot redraws the previously uploaded texture
    - Unknown effect ids draw as Normal
    - snapshot() is a side channel for export; it never touches the slot
"""

import logging
import threading
from typing import Optional, Union

import numpy as np

from edgecam.models.effect import Effect
from edgecam.models.pixel_buffer import PixelBuffer
from edgecam.pipeline.frame_slot import FrameSlot
from edgecam.render.surface import TextureSurface


logger = logging.getLogger(__name__)


class EffectRenderer:
    """
    Texture renderer with a selectable post-effect.

    Attributes:
        slot: Source of processed frames
        frames_uploaded: Frames taken from the slot and uploaded
        draw_count: Draw calls issued

    Example:
        renderer = EffectRenderer(slot, SoftwareSurface())
        renderer.set_effect(2)
        renderer.on_draw_frame()
        latest = renderer.snapshot()
    """

    def __init__(
        self,
        slot: FrameSlot,
        surface: Optional[TextureSurface] = None,
        effect: Union[Effect, int, str] = Effect.NORMAL,
    ) -> None:
        """
        Initialize renderer.

        Args:
            slot: FrameSlot written by the pipeline worker
            surface: Drawing target. May be attached later with
                on_surface_created() from the render thread.
            effect: Initial effect
        """
        self.slot = slot
        self._surface = surface
        self._effect = Effect.coerce(effect)

        self._snapshot_lock = threading.Lock()
        self._snapshot: Optional[np.ndarray] = None
        self._snapshot_version: int = 0

        self.frames_uploaded: int = 0
        self.draw_count: int = 0

    @property
    def effect(self) -> Effect:
        return self._effect

    @property
    def has_surface(self) -> bool:
        return self._surface is not None

    def set_effect(self, effect_id: Union[Effect, int, str]) -> None:
        """
        Select the shader branch for subsequent draws.

        Args:
            effect_id: 0 Normal, 1 Invert, 2 Grayscale, 3 Sepia.
                Anything else draws as Normal.
        """
        effect = Effect.coerce(effect_id)
        if effect != self._effect:
            logger.info(f"Effect changed to: {effect.label}")
        self._effect = effect

    def effect_name(self) -> str:
        """Display name of the active effect."""
        return self._effect.label

    def on_surface_created(self, surface: TextureSurface) -> None:
        """Attach the drawing target created on the render thread."""
        self._surface = surface
        logger.info(f"Surface attached: {type(surface).__name__}")

    def on_draw_frame(self) -> bool:
        """
        Render one tick.

        Takes the pending frame, if any, uploads it over the previous
        texture and draws the quad through the active effect.

        Returns:
            True if a new frame was uploaded, False if the previous
            texture was redrawn (or no surface is attached)
        """
        if self._surface is None:
            return False

        frame = self.slot.take_latest()
        if frame is not None:
            self._surface.upload(frame)
            self.frames_uploaded += 1

        rendered = self._surface.draw(self._effect)
        self.draw_count += 1

        if rendered is not None:
            with self._snapshot_lock:
                self._snapshot = rendered
                if frame is not None:
                    self._snapshot_version += 1

        return frame is not None

    def snapshot(self) -> Optional[PixelBuffer]:
        """
        Copy of the most recently rendered image.

        Returns:
            PixelBuffer of the last draw output, or None before the
            first frame has been rendered
        """
        with self._snapshot_lock:
            rendered = self._snapshot
        if rendered is None:
            return None
        return PixelBuffer.from_rgba(rendered)

    @property
    def snapshot_version(self) -> int:
        """Number of distinct frames rendered into the snapshot."""
        with self._snapshot_lock:
            return self._snapshot_version

    def release(self) -> None:
        """Release the surface. Call from the render thread."""
        if self._surface is not None:
            self._surface.release()
            self._surface = None
        logger.info(
            f"EffectRenderer released: uploaded={self.frames_uploaded}, "
            f"draws={self.draw_count}"
        )

    def metrics(self) -> dict:
        """Export renderer metrics as dict."""
        return {
            "effect": self._effect.label,
            "frames_uploaded": self.frames_uploaded,
            "draw_count": self.draw_count,
        }
