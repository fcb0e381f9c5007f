"""
ProcessingPipeline Tests
========================

Admission, failure recovery and worker exclusivity.
"""

import threading
import time

import pytest

from edgecam.models import Effect, PixelBuffer
from edgecam.pipeline import FrameSlot, ProcessingPipeline
from edgecam.processing import detect
from edgecam.render import EffectRenderer, SoftwareSurface


class GatedDetector:
    """Detector that blocks until released, counting calls."""

    def __init__(self):
        self.started = threading.Event()
        self.gate = threading.Event()
        self.calls = 0

    def __call__(self, frame: PixelBuffer) -> PixelBuffer:
        self.calls += 1
        self.started.set()
        self.gate.wait(timeout=5)
        return detect(frame)


@pytest.fixture
def pipeline_factory():
    """Build pipelines and shut them all down after the test."""
    created = []

    def build(**kwargs):
        pipeline = ProcessingPipeline(**kwargs)
        created.append(pipeline)
        return pipeline

    yield build

    for pipeline in created:
        pipeline.shutdown(wait=True)


class TestAdmission:
    """Drop-on-busy behaviour."""

    def test_admitted_frame_reaches_slot(self, pipeline_factory, split_3x3):
        pipeline = pipeline_factory()

        assert pipeline.submit(split_3x3) is True
        assert pipeline.wait_idle(timeout=5)

        result = pipeline.slot.take_latest()
        assert result is not None
        assert result.pixel(1, 1) == 0xFFFFFFFF
        assert pipeline.metrics.frames_processed == 1

    def test_frame_dropped_while_busy(self, pipeline_factory, white_3x3, split_3x3):
        """A busy pipeline neither runs the detector nor touches the slot."""
        detector = GatedDetector()
        pipeline = pipeline_factory(detector=detector)

        assert pipeline.submit(white_3x3) is True
        assert detector.started.wait(timeout=5)
        assert pipeline.busy

        assert pipeline.submit(split_3x3) is False
        assert detector.calls == 1
        assert pipeline.slot.version == 0

        detector.gate.set()
        assert pipeline.wait_idle(timeout=5)

        assert pipeline.slot.version == 1
        assert pipeline.metrics.frames_dropped == 1
        assert pipeline.metrics.frames_admitted == 1
        assert not pipeline.busy

    def test_burst_keeps_only_first_frame(self, pipeline_factory):
        """Intermediate frames are dropped, not queued."""
        detector = GatedDetector()
        pipeline = pipeline_factory(detector=detector)
        frames = [PixelBuffer.filled(3, 3, 0xFF000000 | i) for i in range(10)]

        results = [pipeline.submit(frame) for frame in frames]
        detector.gate.set()
        pipeline.wait_idle(timeout=5)

        assert results == [True] + [False] * 9
        assert detector.calls == 1
        assert pipeline.metrics.frames_submitted == 10
        assert pipeline.metrics.frames_dropped == 9

    def test_submit_is_non_blocking(self, pipeline_factory, white_3x3):
        detector = GatedDetector()
        pipeline = pipeline_factory(detector=detector)
        pipeline.submit(white_3x3)
        detector.started.wait(timeout=5)

        started = time.perf_counter()
        for _ in range(100):
            pipeline.submit(white_3x3)
        elapsed = time.perf_counter() - started

        detector.gate.set()
        assert elapsed < 1.0

    def test_accepts_next_frame_after_completion(self, pipeline_factory, white_3x3):
        pipeline = pipeline_factory()

        for _ in range(3):
            assert pipeline.submit(white_3x3) is True
            assert pipeline.wait_idle(timeout=5)

        assert pipeline.slot.version == 3
        assert pipeline.metrics.frames_dropped == 0


class TestWorkerExclusivity:
    """At most one frame is ever processed at a time."""

    def test_no_concurrent_detection(self, pipeline_factory):
        lock = threading.Lock()
        state = {"active": 0, "max_active": 0}

        def tracking_detector(frame):
            with lock:
                state["active"] += 1
                state["max_active"] = max(state["max_active"], state["active"])
            time.sleep(0.002)
            with lock:
                state["active"] -= 1
            return detect(frame)

        pipeline = pipeline_factory(detector=tracking_detector)
        frame = PixelBuffer.filled(4, 4, 0xFF808080)

        for _ in range(300):
            pipeline.submit(frame)
            time.sleep(0.0002)
        pipeline.wait_idle(timeout=5)

        assert state["max_active"] == 1
        assert pipeline.metrics.frames_processed >= 1
        assert (
            pipeline.metrics.frames_admitted + pipeline.metrics.frames_dropped
            == pipeline.metrics.frames_submitted
        )


class TestFailureRecovery:
    """A failing frame is dropped and the pipeline keeps going."""

    def test_failure_clears_busy_and_skips_slot(self, pipeline_factory, white_3x3):
        calls = {"n": 0}

        def flaky_detector(frame):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("corrupt frame")
            return detect(frame)

        pipeline = pipeline_factory(detector=flaky_detector)

        assert pipeline.submit(white_3x3) is True
        assert pipeline.wait_idle(timeout=5)
        assert pipeline.metrics.frames_failed == 1
        assert pipeline.slot.version == 0
        assert not pipeline.busy

        assert pipeline.submit(white_3x3) is True
        assert pipeline.wait_idle(timeout=5)
        assert pipeline.slot.version == 1
        assert calls["n"] == 2

    def test_failed_frame_not_retried(self, pipeline_factory, white_3x3):
        calls = {"n": 0}

        def failing_detector(frame):
            calls["n"] += 1
            raise ValueError("always fails")

        pipeline = pipeline_factory(detector=failing_detector)
        pipeline.submit(white_3x3)
        pipeline.wait_idle(timeout=5)
        time.sleep(0.05)

        assert calls["n"] == 1

    def test_redraw_callback_invoked_after_write(self, pipeline_factory, white_3x3):
        slot = FrameSlot()
        seen_versions = []
        pipeline = pipeline_factory(
            slot=slot,
            on_frame_ready=lambda: seen_versions.append(slot.version),
        )

        pipeline.submit(white_3x3)
        pipeline.wait_idle(timeout=5)

        assert seen_versions == [1]

    def test_callback_failure_does_not_wedge_pipeline(self, pipeline_factory, white_3x3):
        def broken_callback():
            raise RuntimeError("display gone")

        pipeline = pipeline_factory(on_frame_ready=broken_callback)

        pipeline.submit(white_3x3)
        assert pipeline.wait_idle(timeout=5)
        assert pipeline.submit(white_3x3) is True
        assert pipeline.wait_idle(timeout=5)
        assert pipeline.metrics.frames_processed == 2


class TestLifecycle:
    """Effect selection and shutdown."""

    def test_set_effect_forwards_to_renderer(self, pipeline_factory):
        slot = FrameSlot()
        renderer = EffectRenderer(slot, SoftwareSurface())
        pipeline = pipeline_factory(slot=slot, renderer=renderer)

        assert pipeline.set_effect(3) is Effect.SEPIA
        assert renderer.effect is Effect.SEPIA

        assert pipeline.set_effect(17) is Effect.NORMAL
        assert renderer.effect is Effect.NORMAL

    def test_initial_effect_applied(self, pipeline_factory):
        slot = FrameSlot()
        renderer = EffectRenderer(slot, SoftwareSurface())
        pipeline_factory(slot=slot, renderer=renderer, effect="grayscale")

        assert renderer.effect is Effect.GRAYSCALE

    def test_shutdown_waits_for_in_flight_frame(self, white_3x3):
        detector = GatedDetector()
        pipeline = ProcessingPipeline(detector=detector)
        pipeline.submit(white_3x3)
        detector.started.wait(timeout=5)

        threading.Timer(0.05, detector.gate.set).start()
        pipeline.shutdown(wait=True)

        assert pipeline.slot.version == 1
        assert not pipeline.busy

    def test_submit_after_shutdown_is_dropped(self, white_3x3):
        pipeline = ProcessingPipeline()
        pipeline.shutdown()
        pipeline.shutdown()

        assert pipeline.closed
        assert pipeline.submit(white_3x3) is False
        assert pipeline.metrics.frames_dropped == 1

    def test_context_manager(self, white_3x3):
        with ProcessingPipeline() as pipeline:
            pipeline.submit(white_3x3)
        assert pipeline.closed
        assert pipeline.slot.version == 1
