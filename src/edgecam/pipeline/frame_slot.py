"""
Frame Slot
==========

Single-slot mailbox between the pipeline worker and the renderer.

Design Rules:
    - Holds at most one frame
    - write() replaces the occupant and bumps the version
    - take_latest() removes the occupant (consume, not peek)
    - A written frame is returned by at most one take_latest()
    - Critical sections are O(1) reference swaps under one lock
"""

import logging
import threading
from typing import Optional

from edgecam.models.pixel_buffer import PixelBuffer


logger = logging.getLogger(__name__)


class FrameSlot:
    """
    Thread-safe single-producer/single-consumer frame mailbox.

    Attributes:
        version: Number of writes since creation
        overwritten_count: Frames replaced before anyone took them

    Example:
        slot = FrameSlot()

        # Worker
        slot.write(result)

        # Renderer
        frame = slot.take_latest()
        if frame is not None:
            upload(frame)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[PixelBuffer] = None
        self._version: int = 0
        self._overwritten_count: int = 0
        self._taken_count: int = 0

    @property
    def version(self) -> int:
        """Monotonic write counter."""
        with self._lock:
            return self._version

    @property
    def overwritten_count(self) -> int:
        """Frames replaced by a newer write before being taken."""
        with self._lock:
            return self._overwritten_count

    @property
    def has_frame(self) -> bool:
        """Whether a frame is waiting to be taken."""
        with self._lock:
            return self._current is not None

    def write(self, frame: PixelBuffer) -> None:
        """
        Store a frame, replacing any pending one.

        Args:
            frame: Processed frame; ownership moves to the slot
        """
        with self._lock:
            if self._current is not None:
                self._overwritten_count += 1
            self._current = frame
            self._version += 1

    def take_latest(self) -> Optional[PixelBuffer]:
        """
        Remove and return the pending frame.

        Returns:
            The pending frame, or None if the slot is empty
        """
        with self._lock:
            frame = self._current
            if frame is not None:
                self._current = None
                self._taken_count += 1
            return frame

    def metrics(self) -> dict:
        """
        Get slot metrics for observability.

        Returns:
            Dict with version, taken_count, overwritten_count, has_frame
        """
        with self._lock:
            return {
                "version": self._version,
                "taken_count": self._taken_count,
                "overwritten_count": self._overwritten_count,
                "has_frame": self._current is not None,
            }
