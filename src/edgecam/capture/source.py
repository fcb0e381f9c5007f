"""
Frame Sources
=============

Producers that feed captured frames into the processing pipeline.

Each source runs its own daemon thread at the device's cadence and calls
the sink (normally ProcessingPipeline.submit) once per frame. The sink is
expected to return immediately; sources never wait on processing.

Sources:
    - CameraFrameSource: OpenCV VideoCapture device
    - SyntheticFrameSource: Deterministic moving test pattern

Device lifecycle is reported through a CameraSession (on_opened, on_error,
on_disconnected). The pipeline itself never sees these events.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol

import cv2
import numpy as np

from edgecam.capture.normalize import FrameDecodeError, normalize_bgr
from edgecam.models.pixel_buffer import PixelBuffer


logger = logging.getLogger(__name__)


FrameSink = Callable[[PixelBuffer], object]


class CameraSession(Protocol):
    """Event handlers for device lifecycle."""

    def on_opened(self, source: "FrameSource") -> None:
        ...

    def on_error(self, source: "FrameSource", error: Exception) -> None:
        ...

    def on_disconnected(self, source: "FrameSource") -> None:
        ...


class LoggingCameraSession:
    """Default session: logs lifecycle events."""

    def on_opened(self, source: "FrameSource") -> None:
        logger.info(f"{source.name} opened")

    def on_error(self, source: "FrameSource", error: Exception) -> None:
        logger.error(f"{source.name} error: {error}")

    def on_disconnected(self, source: "FrameSource") -> None:
        logger.warning(f"{source.name} disconnected")


class SourceMetrics:
    """Metrics for FrameSource observability."""

    __slots__ = (
        "frames_captured",
        "frames_accepted",
        "decode_errors",
        "last_frame_at",
    )

    def __init__(self) -> None:
        self.frames_captured: int = 0
        self.frames_accepted: int = 0
        self.decode_errors: int = 0
        self.last_frame_at: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_captured": self.frames_captured,
            "frames_accepted": self.frames_accepted,
            "decode_errors": self.decode_errors,
            "last_frame_at": self.last_frame_at,
        }


class FrameSource(ABC):
    """
    Base class for threaded frame producers.

    Subclasses implement _run(), checking self._stop_event between frames
    and handing each frame to self._deliver().
    """

    name = "frame-source"

    def __init__(
        self,
        sink: FrameSink,
        session: Optional[CameraSession] = None,
    ) -> None:
        self._sink = sink
        self._session = session if session is not None else LoggingCameraSession()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.metrics = SourceMetrics()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the capture thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=self.name,
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop capturing and join the capture thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(f"{self.name} thread did not stop in time")
            self._thread = None

    def _deliver(self, frame: PixelBuffer) -> None:
        self.metrics.frames_captured += 1
        self.metrics.last_frame_at = time.time()
        if self._sink(frame):
            self.metrics.frames_accepted += 1

    @abstractmethod
    def _run(self) -> None:
        """Capture loop body, run on the source thread."""


class CameraFrameSource(FrameSource):
    """
    Captures frames from an OpenCV video device.

    Attributes:
        device_index: VideoCapture device index
        width: Requested capture width (None = device default)
        height: Requested capture height (None = device default)
    """

    name = "camera-source"

    def __init__(
        self,
        sink: FrameSink,
        device_index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
        session: Optional[CameraSession] = None,
        capture_factory: Callable[[int], object] = cv2.VideoCapture,
    ) -> None:
        """
        Initialize camera source.

        Args:
            sink: Called with each normalized frame
            device_index: Camera device index
            width: Requested frame width
            height: Requested frame height
            session: Lifecycle event handlers
            capture_factory: Builds the capture object for a device index
        """
        super().__init__(sink, session)
        self.device_index = device_index
        self.width = width
        self.height = height
        self._capture_factory = capture_factory

    def _run(self) -> None:
        capture = self._capture_factory(self.device_index)
        if not capture.isOpened():
            capture.release()
            self._session.on_error(
                self,
                FrameDecodeError(f"Could not open camera {self.device_index}"),
            )
            return

        if self.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        self._session.on_opened(self)
        try:
            while not self._stop_event.is_set():
                ok, image = capture.read()
                if not ok:
                    self._session.on_disconnected(self)
                    break

                try:
                    frame = normalize_bgr(image)
                except FrameDecodeError as e:
                    self.metrics.decode_errors += 1
                    self._session.on_error(self, e)
                    continue

                self._deliver(frame)
        finally:
            capture.release()
            logger.info(
                f"{self.name} stopped: captured={self.metrics.frames_captured}"
            )


class SyntheticFrameSource(FrameSource):
    """
    Generates a moving white square on a dark background.

    Frame content depends only on the frame index, so runs are
    reproducible.

    Attributes:
        width: Frame width
        height: Frame height
        fps: Frames per second
        max_frames: Stop after this many frames (None = unlimited)
    """

    name = "synthetic-source"

    def __init__(
        self,
        sink: FrameSink,
        width: int = 320,
        height: int = 240,
        fps: float = 30.0,
        max_frames: Optional[int] = None,
        session: Optional[CameraSession] = None,
    ) -> None:
        super().__init__(sink, session)
        if fps <= 0:
            raise ValueError("fps must be > 0")
        self.width = width
        self.height = height
        self.fps = fps
        self.max_frames = max_frames

    @staticmethod
    def make_frame(index: int, width: int, height: int) -> PixelBuffer:
        """Render test pattern frame number `index`."""
        rgba = np.empty((height, width, 4), dtype=np.uint8)
        rgba[..., :3] = 32
        rgba[..., 3] = 255

        side = max(1, min(width, height) // 4)
        span = max(1, width - side)
        x = (index * 4) % span
        y = max(0, (height - side) // 2)
        rgba[y:y + side, x:x + side, :3] = 255

        return PixelBuffer.from_rgba(rgba)

    def _run(self) -> None:
        self._session.on_opened(self)
        interval = 1.0 / self.fps
        index = 0
        next_at = time.monotonic()

        while not self._stop_event.is_set():
            if self.max_frames is not None and index >= self.max_frames:
                self._session.on_disconnected(self)
                break

            self._deliver(self.make_frame(index, self.width, self.height))
            index += 1

            next_at += interval
            delay = next_at - time.monotonic()
            if delay > 0:
                self._stop_event.wait(timeout=delay)
            else:
                next_at = time.monotonic()

        logger.info(f"{self.name} stopped: captured={self.metrics.frames_captured}")


def create_source(
    kind: str,
    sink: FrameSink,
    device_index: int = 0,
    width: Optional[int] = None,
    height: Optional[int] = None,
    fps: float = 30.0,
    session: Optional[CameraSession] = None,
) -> FrameSource:
    """
    Build a frame source for a configured source name.

    Args:
        kind: "camera" or "synthetic"
        sink: Frame consumer (ProcessingPipeline.submit)

    Raises:
        ValueError: Unknown source name
    """
    if kind == "camera":
        logger.info(f"Using CameraFrameSource (device {device_index})")
        return CameraFrameSource(
            sink,
            device_index=device_index,
            width=width,
            height=height,
            session=session,
        )

    elif kind == "synthetic":
        logger.info("Using SyntheticFrameSource")
        return SyntheticFrameSource(
            sink,
            width=width or 320,
            height=height or 240,
            fps=fps,
            session=session,
        )

    else:
        raise ValueError(f"Unknown capture source: {kind}")
