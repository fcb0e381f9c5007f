"""
Render Loop
===========

Dedicated render thread driving EffectRenderer on redraw requests.

The thread creates the surface itself, so a GL context is current on the
thread that draws with it. The pipeline calls request_redraw() after each
delivered frame; the loop also redraws on an idle interval so effect
changes show up without a new frame.
"""

import logging
import threading
import time
from typing import Callable, Optional

from edgecam.render.renderer import EffectRenderer
from edgecam.render.surface import TextureSurface


logger = logging.getLogger(__name__)


class RenderLoop:
    """
    Owns the render thread.

    Attributes:
        renderer: Renderer drawn on each tick
        max_fps: Upper bound on draw rate
        idle_redraw_seconds: Redraw interval with no new frames
    """

    def __init__(
        self,
        renderer: EffectRenderer,
        surface_factory: Callable[[], TextureSurface],
        max_fps: float = 60.0,
        idle_redraw_seconds: float = 0.5,
    ) -> None:
        """
        Initialize render loop.

        Args:
            renderer: Renderer to drive
            surface_factory: Builds the surface on the render thread
            max_fps: Maximum draws per second
            idle_redraw_seconds: Redraw period when no frame arrives
        """
        if max_fps <= 0:
            raise ValueError("max_fps must be > 0")

        self.renderer = renderer
        self.max_fps = max_fps
        self.idle_redraw_seconds = idle_redraw_seconds

        self._surface_factory = surface_factory
        self._redraw = threading.Event()
        self._stop = threading.Event()
        self._ready = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def request_redraw(self) -> None:
        """Ask for a draw on the next loop iteration. Thread-safe."""
        self._redraw.set()

    def start(self, timeout: float = 5.0) -> None:
        """
        Start the render thread and wait for the surface.

        Raises:
            RuntimeError: If the surface could not be created
        """
        if self.running:
            return

        self._stop.clear()
        self._ready.clear()
        self._error = None
        self._thread = threading.Thread(
            target=self._run,
            name="render-loop",
            daemon=True,
        )
        self._thread.start()

        if not self._ready.wait(timeout=timeout):
            raise RuntimeError("Render surface was not created in time")
        if self._error is not None:
            raise RuntimeError(f"Render surface creation failed: {self._error}")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the render thread and release the surface."""
        if self._thread is None:
            return

        self._stop.set()
        self._redraw.set()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Render thread did not stop in time")
        self._thread = None

    def _run(self) -> None:
        try:
            surface = self._surface_factory()
        except Exception as e:
            logger.error(f"Failed to create render surface: {e}")
            self._error = e
            self._ready.set()
            return

        self.renderer.on_surface_created(surface)
        self._ready.set()
        logger.info(f"Render loop started (max_fps={self.max_fps})")

        min_interval = 1.0 / self.max_fps
        try:
            while not self._stop.is_set():
                self._redraw.wait(timeout=self.idle_redraw_seconds)
                self._redraw.clear()
                if self._stop.is_set():
                    break

                started = time.monotonic()
                try:
                    self.renderer.on_draw_frame()
                except Exception as e:
                    logger.error(f"Draw failed: {e}")

                remaining = min_interval - (time.monotonic() - started)
                if remaining > 0:
                    self._stop.wait(timeout=remaining)
        finally:
            self.renderer.release()
            logger.info("Render loop stopped")
