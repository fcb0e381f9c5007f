"""
Export Tests
============
"""

import base64

import cv2
import numpy as np
import pytest

from edgecam.export import (
    ExportError,
    FrameExporter,
    FrameStatus,
    encode_jpeg,
)
from edgecam.models import PixelBuffer
from edgecam.pipeline import FrameSlot, PipelineMetrics
from edgecam.render import EffectRenderer, SoftwareSurface


@pytest.fixture
def rendered():
    """Renderer that has drawn one 16x8 mid-gray frame."""
    slot = FrameSlot()
    renderer = EffectRenderer(slot, SoftwareSurface())
    slot.write(PixelBuffer.filled(16, 8, 0xFF808080))
    renderer.on_draw_frame()
    return renderer


class TestEncodeJpeg:
    def test_encodes_decodable_jpeg(self):
        jpeg = encode_jpeg(PixelBuffer.filled(16, 8, 0xFF808080))
        assert jpeg[:2] == b"\xff\xd8"

        decoded = cv2.imdecode(np.frombuffer(jpeg, np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (8, 16, 3)

    def test_empty_frame_rejected(self):
        with pytest.raises(ExportError):
            encode_jpeg(PixelBuffer.blank(0, 0))


class TestFrameExporter:
    """Disk export and viewer reports from the renderer snapshot."""

    def test_export_without_frame(self, tmp_path):
        renderer = EffectRenderer(FrameSlot(), SoftwareSurface())
        exporter = FrameExporter(renderer, path=tmp_path / "frame.jpg")

        assert exporter.export() is None
        assert not (tmp_path / "frame.jpg").exists()

    def test_export_writes_file(self, rendered, tmp_path):
        target = tmp_path / "nested" / "frame.jpg"
        exporter = FrameExporter(rendered, path=target)

        assert exporter.export() == target
        assert target.read_bytes()[:2] == b"\xff\xd8"
        assert exporter.export_count == 1
        assert [p.name for p in target.parent.iterdir()] == ["frame.jpg"]

    def test_unwritable_destination_raises_export_error(self, rendered, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        exporter = FrameExporter(rendered, path=blocker / "frame.jpg")

        with pytest.raises(ExportError):
            exporter.export()
        assert exporter.export_count == 0

    def test_export_does_not_consume_slot(self, rendered, tmp_path):
        rendered.slot.write(PixelBuffer.filled(4, 4, 0xFFFFFFFF))
        FrameExporter(rendered, path=tmp_path / "f.jpg").export()
        assert rendered.slot.has_frame

    def test_report_no_frame(self):
        renderer = EffectRenderer(FrameSlot(), SoftwareSurface())
        report = FrameExporter(renderer).report()

        assert report.status == FrameStatus.NO_FRAME
        assert report.frame is None
        assert report.resolution == "0x0"
        assert report.effects == ["Normal", "Invert", "Grayscale", "Sepia"]

    def test_report_success(self, rendered):
        metrics = PipelineMetrics()
        metrics.record_processed(completed_at=1.0, processing_ms=4.0)
        metrics.record_processed(completed_at=1.05, processing_ms=5.0)
        rendered.set_effect(3)

        report = FrameExporter(rendered, metrics=metrics).report()

        assert report.status == FrameStatus.SUCCESS
        assert report.resolution == "16x8"
        assert report.current_effect == "Sepia"
        assert report.fps == pytest.approx(20.0)
        assert report.processing_ms == 5.0

        prefix = "data:image/jpeg;base64,"
        assert report.frame.startswith(prefix)
        assert base64.b64decode(report.frame[len(prefix):])[:2] == b"\xff\xd8"

    def test_report_serializes(self, rendered):
        payload = FrameExporter(rendered).report().model_dump(mode="json")
        assert payload["status"] == "success"
        assert isinstance(payload["timestamp"], str)
