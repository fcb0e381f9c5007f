"""
Texture Surfaces
================

Drawing targets for EffectRenderer.

A surface owns one 2D texture and draws it as a full-screen quad through
the effect shader. Two implementations share the TextureSurface protocol:

    - GLSurface: moderngl texture, shader program and offscreen framebuffer
    - SoftwareSurface: numpy texture sampled 1:1, same effect math on CPU

Surfaces are not thread-safe. Create, use and release a surface on the
thread that renders (the thread owning the GL context).
"""

import logging
from typing import Optional, Protocol

import moderngl
import numpy as np

from edgecam.models.effect import Effect
from edgecam.models.pixel_buffer import PixelBuffer
from edgecam.render.effects import (
    FRAGMENT_SHADER,
    QUAD_INDICES,
    QUAD_VERTICES,
    VERTEX_SHADER,
    apply_effect,
)


logger = logging.getLogger(__name__)


class TextureSurface(Protocol):
    """
    Protocol for render targets.

    upload() replaces the bound texture; draw() renders the bound texture
    through an effect and returns the rendered RGBA image, or None when no
    texture has been uploaded yet.
    """

    def upload(self, frame: PixelBuffer) -> None:
        ...

    def draw(self, effect: Effect) -> Optional[np.ndarray]:
        ...

    def release(self) -> None:
        ...


class SoftwareSurface:
    """
    CPU surface with the quad sampled at texture resolution.

    Used where no GPU context exists (headless servers, tests).
    """

    def __init__(self) -> None:
        self._texture: Optional[np.ndarray] = None
        self.upload_count: int = 0
        self.draw_count: int = 0

    @property
    def has_texture(self) -> bool:
        return self._texture is not None

    def upload(self, frame: PixelBuffer) -> None:
        self._texture = frame.to_rgba()
        self.upload_count += 1

    def draw(self, effect: Effect) -> Optional[np.ndarray]:
        self.draw_count += 1
        if self._texture is None:
            return None
        return apply_effect(self._texture, effect)

    def release(self) -> None:
        self._texture = None


class GLSurface:
    """
    OpenGL surface backed by moderngl.

    Renders into an offscreen framebuffer the size of the last uploaded
    frame, so the result can be read back for snapshots. Pass an existing
    context to draw inside a window; otherwise a standalone context is
    created on the calling thread.

    Attributes:
        ctx: moderngl context
    """

    def __init__(self, ctx=None) -> None:
        """
        Initialize shader program, quad buffers and vertex array.

        Args:
            ctx: Existing moderngl.Context, or None for a standalone one
        """
        self._owns_context = ctx is None
        self.ctx = ctx if ctx is not None else moderngl.create_context(standalone=True)

        self._program = self.ctx.program(
            vertex_shader=VERTEX_SHADER,
            fragment_shader=FRAGMENT_SHADER,
        )
        self._vbo = self.ctx.buffer(QUAD_VERTICES.tobytes())
        self._ibo = self.ctx.buffer(QUAD_INDICES.tobytes())
        self._vao = self.ctx.vertex_array(
            self._program,
            [(self._vbo, "2f 2f", "vPosition", "vTexCoord")],
            index_buffer=self._ibo,
            index_element_size=2,
        )

        self._texture = None
        self._color = None
        self._fbo = None
        self._size = (0, 0)

        logger.info(
            f"GLSurface initialized: renderer={self.ctx.info.get('GL_RENDERER')}, "
            f"standalone={self._owns_context}"
        )

    def _ensure_size(self, width: int, height: int) -> None:
        """Recreate texture and framebuffer if the frame size changed."""
        if self._size == (width, height) and self._texture is not None:
            return

        self._release_targets()

        self._texture = self.ctx.texture((width, height), 4, dtype="f1")
        self._texture.filter = (moderngl.LINEAR, moderngl.LINEAR)
        self._texture.repeat_x = False
        self._texture.repeat_y = False

        self._color = self.ctx.texture((width, height), 4, dtype="f1")
        self._fbo = self.ctx.framebuffer(color_attachments=[self._color])
        self._size = (width, height)

        logger.debug(f"GLSurface resized to {width}x{height}")

    def upload(self, frame: PixelBuffer) -> None:
        if frame.width == 0 or frame.height == 0:
            logger.debug("Skipping upload of empty frame")
            return
        self._ensure_size(frame.width, frame.height)
        self._texture.write(frame.to_rgba().tobytes())

    def draw(self, effect: Effect) -> Optional[np.ndarray]:
        if self._texture is None:
            return None

        width, height = self._size
        self._fbo.use()
        self.ctx.viewport = (0, 0, width, height)
        self._fbo.clear(0.0, 0.0, 0.0, 1.0)

        self._texture.use(location=0)
        self._program["uTexture"].value = 0
        self._program["uEffect"].value = int(Effect.coerce(effect))
        self._vao.render(moderngl.TRIANGLES)

        data = self._fbo.read(components=4, dtype="f1")
        # Framebuffer rows are bottom-up
        image = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
        return np.flipud(image).copy()

    def _release_targets(self) -> None:
        for resource in (self._fbo, self._color, self._texture):
            if resource is not None:
                resource.release()
        self._fbo = None
        self._color = None
        self._texture = None
        self._size = (0, 0)

    def release(self) -> None:
        self._release_targets()
        self._vao.release()
        self._vbo.release()
        self._ibo.release()
        self._program.release()
        if self._owns_context:
            self.ctx.release()
        logger.info("GLSurface released")


def create_surface(backend: str, ctx=None) -> TextureSurface:
    """
    Build a surface for a configured backend name.

    Args:
        backend: "software" or "gl"
        ctx: Optional moderngl context for the "gl" backend

    Returns:
        A TextureSurface

    Raises:
        ValueError: Unknown backend name
    """
    if backend == "software":
        logger.info("Using SoftwareSurface")
        return SoftwareSurface()

    elif backend == "gl":
        logger.info("Using GLSurface")
        return GLSurface(ctx=ctx)

    else:
        raise ValueError(f"Unknown render backend: {backend}")
