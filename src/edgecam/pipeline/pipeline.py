"""
Processing Pipeline
===================

Drop-on-busy admission of camera frames into a single edge-detection worker.

The camera produces frames at its own cadence and cannot be throttled. The
pipeline admits at most one frame at a time; a frame that arrives while the
worker is busy is dropped, never queued. Staleness is bounded to one frame
and there is no backlog.

Flow:
    submit(frame)
      └─ busy? ── yes ──> drop, return False
      └─ no  ──> set busy, hand frame to worker, return True
    worker
      └─ detect(frame) -> slot.write(result) -> on_frame_ready()
      └─ finally: clear busy

Design Rules:
    - submit() never blocks
    - busy is an atomic test-and-set (non-blocking Lock acquire)
    - Exactly one worker thread; frames never run concurrently
    - A failing frame is logged and dropped, never retried or raised
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, Optional, Union

from edgecam.models.effect import Effect
from edgecam.models.pixel_buffer import PixelBuffer
from edgecam.pipeline.frame_slot import FrameSlot
from edgecam.processing.edge_detector import EdgeDetector, detect

if TYPE_CHECKING:
    from edgecam.render.renderer import EffectRenderer


logger = logging.getLogger(__name__)


class PipelineMetrics:
    """Metrics for ProcessingPipeline observability."""

    __slots__ = (
        "frames_submitted",
        "frames_admitted",
        "frames_dropped",
        "frames_processed",
        "frames_failed",
        "last_processing_ms",
        "fps",
        "_last_completed_at",
        "_fps_alpha",
    )

    def __init__(self, fps_alpha: float = 0.2) -> None:
        self.frames_submitted: int = 0
        self.frames_admitted: int = 0
        self.frames_dropped: int = 0
        self.frames_processed: int = 0
        self.frames_failed: int = 0
        self.last_processing_ms: float = 0.0
        self.fps: float = 0.0
        self._last_completed_at: Optional[float] = None
        self._fps_alpha = fps_alpha

    def record_processed(self, completed_at: float, processing_ms: float) -> None:
        """Count a delivered frame and update the EMA frame rate."""
        self.frames_processed += 1
        self.last_processing_ms = processing_ms

        if self._last_completed_at is not None:
            interval = completed_at - self._last_completed_at
            if interval > 0:
                instant = 1.0 / interval
                if self.fps == 0.0:
                    self.fps = instant
                else:
                    self.fps = (
                        self._fps_alpha * instant
                        + (1 - self._fps_alpha) * self.fps
                    )
        self._last_completed_at = completed_at

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_submitted": self.frames_submitted,
            "frames_admitted": self.frames_admitted,
            "frames_dropped": self.frames_dropped,
            "frames_processed": self.frames_processed,
            "frames_failed": self.frames_failed,
            "last_processing_ms": round(self.last_processing_ms, 2),
            "fps": round(self.fps, 2),
        }


class ProcessingPipeline:
    """
    Bounded-latency frame pipeline with one background worker.

    Attributes:
        slot: FrameSlot receiving processed frames
        effect: Active post-processing effect
        metrics: Submission, drop and throughput counters

    Example:
        with ProcessingPipeline(slot=slot, on_frame_ready=loop.request_redraw) as p:
            for frame in camera:
                p.submit(frame)
    """

    def __init__(
        self,
        slot: Optional[FrameSlot] = None,
        detector: EdgeDetector = detect,
        on_frame_ready: Optional[Callable[[], None]] = None,
        renderer: Optional["EffectRenderer"] = None,
        effect: Union[Effect, int, str] = Effect.NORMAL,
    ) -> None:
        """
        Initialize the pipeline and start its worker thread.

        Args:
            slot: Mailbox for results. A new FrameSlot if omitted.
            detector: Frame transform run on the worker
            on_frame_ready: Redraw request, called after each delivered frame
            renderer: Renderer that receives effect changes
            effect: Initial effect; unknown values mean NORMAL
        """
        self.slot = slot if slot is not None else FrameSlot()
        self.metrics = PipelineMetrics()

        self._detector = detector
        self._on_frame_ready = on_frame_ready
        self._renderer = renderer
        self._busy = threading.Lock()
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="edge-worker",
        )

        self._effect = Effect.NORMAL
        self.set_effect(effect)

        logger.info(f"ProcessingPipeline started: effect={self._effect.label}")

    def __enter__(self) -> "ProcessingPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)

    @property
    def busy(self) -> bool:
        """Whether a frame is currently in flight."""
        return self._busy.locked()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def effect(self) -> Effect:
        return self._effect

    def set_effect(self, effect: Union[Effect, int, str]) -> Effect:
        """
        Select the post-processing effect.

        Takes effect on the renderer's next draw. Unknown values fall
        back to Effect.NORMAL.

        Args:
            effect: Effect, id or name

        Returns:
            The effect now active
        """
        self._effect = Effect.coerce(effect)
        if self._renderer is not None:
            self._renderer.set_effect(self._effect)
        return self._effect

    def submit(self, frame: PixelBuffer) -> bool:
        """
        Offer a captured frame to the pipeline.

        Non-blocking. If a frame is already in flight the new one is
        dropped without any further work.

        Args:
            frame: Captured frame; ownership moves to the pipeline

        Returns:
            True if the frame was admitted, False if it was dropped
        """
        self.metrics.frames_submitted += 1

        if self._closed:
            self.metrics.frames_dropped += 1
            return False

        if not self._busy.acquire(blocking=False):
            self.metrics.frames_dropped += 1
            logger.debug(
                f"Worker busy, dropped frame. "
                f"Total dropped: {self.metrics.frames_dropped}"
            )
            return False

        try:
            self._executor.submit(self._process, frame)
        except RuntimeError:
            # Executor shut down between the closed check and submit
            self._busy.release()
            self.metrics.frames_dropped += 1
            return False

        self.metrics.frames_admitted += 1
        return True

    def _process(self, frame: PixelBuffer) -> None:
        """Worker body. Always clears busy."""
        started = time.perf_counter()
        try:
            try:
                result = self._detector(frame)
            except Exception:
                self.metrics.frames_failed += 1
                logger.exception(
                    f"Frame processing failed ({frame!r}), frame dropped"
                )
                return

            self.slot.write(result)

            completed = time.perf_counter()
            self.metrics.record_processed(
                completed_at=completed,
                processing_ms=(completed - started) * 1000.0,
            )

            if self._on_frame_ready is not None:
                try:
                    self._on_frame_ready()
                except Exception:
                    logger.exception("Redraw request failed")
        finally:
            self._busy.release()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no frame is in flight.

        Briefly holds the busy flag, so a frame submitted at that instant
        is dropped.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            True if the pipeline went idle, False on timeout
        """
        acquired = self._busy.acquire(timeout=-1 if timeout is None else timeout)
        if acquired:
            self._busy.release()
        return acquired

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop accepting frames and stop the worker.

        Args:
            wait: Join the worker thread (finishing the in-flight frame)
                before returning
        """
        if self._closed:
            return

        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info(
            f"ProcessingPipeline stopped: "
            f"processed={self.metrics.frames_processed}, "
            f"dropped={self.metrics.frames_dropped}, "
            f"failed={self.metrics.frames_failed}"
        )
