"""
Frame Exporter
==============

Export of the latest rendered frame for the companion web viewer.

The exporter reads the renderer's snapshot, a side channel that never
consumes frames from the FrameSlot, and either writes it to disk as JPEG
or packs it into a FrameReport.

Design Rules:
    - Never calls FrameSlot.take_latest()
    - File writes are atomic (temp file + rename)
"""

import base64
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import cv2

from edgecam.capture.normalize import to_bgr
from edgecam.export.report import FrameReport, FrameStatus
from edgecam.models.pixel_buffer import PixelBuffer
from edgecam.pipeline.pipeline import PipelineMetrics
from edgecam.render.renderer import EffectRenderer


logger = logging.getLogger(__name__)


class ExportError(Exception):
    """Raised when a frame cannot be encoded or written."""
    pass


def encode_jpeg(frame: PixelBuffer, quality: int = 90) -> bytes:
    """
    Encode a frame as JPEG.

    Args:
        frame: Frame to encode (alpha is dropped)
        quality: JPEG quality, 1-100

    Returns:
        JPEG bytes

    Raises:
        ExportError: If the frame is empty or encoding fails
    """
    if frame.width == 0 or frame.height == 0:
        raise ExportError(f"Cannot encode empty frame {frame.width}x{frame.height}")

    ok, encoded = cv2.imencode(
        ".jpg",
        to_bgr(frame),
        [cv2.IMWRITE_JPEG_QUALITY, int(quality)],
    )
    if not ok:
        raise ExportError("cv2.imencode returned failure")
    return encoded.tobytes()


def to_data_uri(jpeg: bytes) -> str:
    """Wrap JPEG bytes in a base64 data URI."""
    return "data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii")


class FrameExporter:
    """
    Exports the renderer's latest output.

    Attributes:
        path: Destination file for export()
        quality: JPEG quality
        export_count: Successful exports
    """

    def __init__(
        self,
        renderer: EffectRenderer,
        path: Union[str, Path] = "processed_frame.jpg",
        quality: int = 90,
        metrics: Optional[PipelineMetrics] = None,
    ) -> None:
        """
        Initialize exporter.

        Args:
            renderer: Renderer whose snapshot is exported
            path: Destination JPEG path
            quality: JPEG quality, 1-100
            metrics: Pipeline metrics for fps in reports
        """
        self.renderer = renderer
        self.path = Path(path)
        self.quality = quality
        self.export_count: int = 0
        self._metrics = metrics

    def export(self) -> Optional[Path]:
        """
        Write the latest rendered frame to `path`.

        Returns:
            The written path, or None if nothing has been rendered yet

        Raises:
            ExportError: If encoding or writing fails
        """
        frame = self.renderer.snapshot()
        if frame is None:
            logger.info("Export skipped: no frame rendered yet")
            return None

        jpeg = encode_jpeg(frame, self.quality)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".export-",
                suffix=".jpg",
            )
        except OSError as e:
            raise ExportError(f"Cannot write to {self.path.parent}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(jpeg)
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise ExportError(f"Failed to write {self.path}: {e}") from e

        self.export_count += 1
        logger.info(f"Exported {frame.width}x{frame.height} frame to {self.path}")
        return self.path

    def report(self) -> FrameReport:
        """
        Build the viewer payload for the latest rendered frame.

        Returns:
            FrameReport with status success, no_frame or error
        """
        fps = self._metrics.fps if self._metrics is not None else 0.0
        processing_ms = (
            self._metrics.last_processing_ms if self._metrics is not None else 0.0
        )
        current_effect = self.renderer.effect_name()

        frame = self.renderer.snapshot()
        if frame is None:
            return FrameReport(
                fps=0.0,
                current_effect=current_effect,
                status=FrameStatus.NO_FRAME,
                message="No processed frame available yet",
            )

        try:
            jpeg = encode_jpeg(frame, self.quality)
        except ExportError as e:
            logger.error(f"Frame report encoding failed: {e}")
            return FrameReport(
                fps=fps,
                current_effect=current_effect,
                status=FrameStatus.ERROR,
                message=str(e),
            )

        return FrameReport(
            frame=to_data_uri(jpeg),
            fps=round(fps, 2),
            processing_ms=round(processing_ms, 2),
            resolution=f"{frame.width}x{frame.height}",
            current_effect=current_effect,
            status=FrameStatus.SUCCESS,
        )
