"""
FrameSlot Tests
===============
"""

import threading

from edgecam.models.pixel_buffer import PixelBuffer
from edgecam.pipeline import FrameSlot


class TestHandOff:
    """Single-threaded slot semantics."""

    def test_empty_slot_returns_none(self):
        slot = FrameSlot()
        assert slot.take_latest() is None
        assert slot.version == 0

    def test_write_then_take_once(self, white_3x3):
        """Exactly one take returns the frame; the next returns nothing."""
        slot = FrameSlot()
        slot.write(white_3x3)

        assert slot.take_latest() is white_3x3
        assert slot.take_latest() is None

    def test_write_replaces_pending_frame(self, white_3x3, split_3x3):
        slot = FrameSlot()
        slot.write(white_3x3)
        slot.write(split_3x3)

        assert slot.version == 2
        assert slot.overwritten_count == 1
        assert slot.take_latest() is split_3x3
        assert slot.take_latest() is None

    def test_version_counts_every_write(self, white_3x3):
        slot = FrameSlot()
        for _ in range(3):
            slot.write(white_3x3)
            slot.take_latest()
        assert slot.version == 3
        assert slot.overwritten_count == 0

    def test_metrics(self, white_3x3):
        slot = FrameSlot()
        slot.write(white_3x3)
        assert slot.metrics() == {
            "version": 1,
            "taken_count": 0,
            "overwritten_count": 0,
            "has_frame": True,
        }


class TestConcurrentAccess:
    """One writer thread, one reader thread."""

    def test_every_write_is_taken_or_overwritten_exactly_once(self):
        slot = FrameSlot()
        frames = [PixelBuffer.filled(2, 2, i) for i in range(2000)]
        taken = []
        done = threading.Event()

        def writer():
            for frame in frames:
                slot.write(frame)
            done.set()

        def reader():
            while not done.is_set():
                frame = slot.take_latest()
                if frame is not None:
                    taken.append(frame)
            frame = slot.take_latest()
            if frame is not None:
                taken.append(frame)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        ids = [id(f) for f in taken]
        assert len(ids) == len(set(ids)), "a frame was taken twice"
        assert len(taken) + slot.overwritten_count == len(frames)
        assert slot.version == len(frames)

        # Frames come out in write order
        values = [f.pixel(0, 0) for f in taken]
        assert values == sorted(values)
