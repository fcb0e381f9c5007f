#!/usr/bin/env python3
"""
Pipeline Soak Script
====================

Standalone script that runs the full capture -> edge detection -> render
chain without the HTTP server and reports drop behaviour.

This script:
    1. Starts a synthetic (or camera) source at a fixed frame rate
    2. Runs the pipeline and render loop for a configurable duration
    3. Logs throughput and drop stats every few seconds
    4. Optionally exports the last rendered frame

Usage:
    python scripts/pipeline_soak.py --duration 30
    python scripts/pipeline_soak.py --source camera --effect sepia --export out.jpg
    python scripts/pipeline_soak.py --width 1920 --height 1080 --fps 60
"""

import argparse
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from edgecam.capture import create_source
from edgecam.export import ExportError, FrameExporter
from edgecam.pipeline import FrameSlot, ProcessingPipeline
from edgecam.render import EffectRenderer, RenderLoop, create_surface


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def run_soak(
    source_kind: str,
    width: int,
    height: int,
    fps: float,
    duration: int,
    effect: str,
    backend: str,
    report_interval: int,
    export_path: str = "",
) -> dict:
    """
    Run the soak test.

    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("EdgeCam Pipeline Soak")
    logger.info("=" * 60)
    logger.info(f"Source: {source_kind} {width}x{height} @ {fps} fps")
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Effect: {effect}, backend: {backend}")
    logger.info("=" * 60)

    slot = FrameSlot()
    renderer = EffectRenderer(slot)
    loop = RenderLoop(renderer, surface_factory=lambda: create_surface(backend))
    loop.start()

    pipeline = ProcessingPipeline(
        slot=slot,
        on_frame_ready=loop.request_redraw,
        renderer=renderer,
        effect=effect,
    )
    source = None
    start_time = time.time()
    last_report_time = start_time
    last_processed = 0

    try:
        source = create_source(
            source_kind,
            pipeline.submit,
            width=width,
            height=height,
            fps=fps,
        )
        source.start()

        while time.time() - start_time < duration:
            time.sleep(0.5)

            since_report = time.time() - last_report_time
            if since_report >= report_interval:
                metrics = pipeline.metrics
                processed_rate = (metrics.frames_processed - last_processed) / since_report

                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {time.time() - start_time:.0f}s)")
                logger.info(f"  Captured: {source.metrics.frames_captured}")
                logger.info(f"  Processed: {metrics.frames_processed} ({processed_rate:.1f}/s)")
                logger.info(f"  Dropped: {metrics.frames_dropped}")
                logger.info(f"  Failed: {metrics.frames_failed}")
                logger.info(f"  Last detect: {metrics.last_processing_ms:.1f} ms")
                logger.info(f"  Uploaded: {renderer.frames_uploaded}")
                logger.info(f"  Slot overwrites: {slot.overwritten_count}")

                last_report_time = time.time()
                last_processed = metrics.frames_processed

    except KeyboardInterrupt:
        logger.info("Soak interrupted by user")
    finally:
        if source is not None:
            source.stop()
        pipeline.shutdown(wait=True)
        loop.stop()

    # The snapshot outlives the surface, so export after the loop is down
    if export_path:
        try:
            written = FrameExporter(renderer, path=export_path).export()
            logger.info(f"Exported last frame to: {written}")
        except ExportError as e:
            logger.error(f"Export failed: {e}")

    total_time = time.time() - start_time
    metrics = pipeline.metrics
    drop_ratio = (
        metrics.frames_dropped / metrics.frames_submitted
        if metrics.frames_submitted else 0.0
    )

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames submitted: {metrics.frames_submitted}")
    logger.info(f"Frames processed: {metrics.frames_processed}")
    logger.info(f"Frames dropped: {metrics.frames_dropped} ({drop_ratio:.1%})")
    logger.info(f"Frames failed: {metrics.frames_failed}")
    logger.info(f"Frames uploaded: {renderer.frames_uploaded}")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "frames_submitted": metrics.frames_submitted,
        "frames_processed": metrics.frames_processed,
        "frames_dropped": metrics.frames_dropped,
        "frames_failed": metrics.frames_failed,
        "drop_ratio": drop_ratio,
    }


def main():
    parser = argparse.ArgumentParser(description="EdgeCam pipeline soak test")
    parser.add_argument("--source", default="synthetic", choices=["synthetic", "camera"])
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=480)
    parser.add_argument("--fps", type=float, default=30.0)
    parser.add_argument("--duration", type=int, default=30, help="Seconds (default: 30)")
    parser.add_argument("--effect", default="normal", help="Effect id or name")
    parser.add_argument("--backend", default="software", choices=["software", "gl"])
    parser.add_argument("--report-interval", type=int, default=5)
    parser.add_argument("--export", default="", help="Export last frame to this path")

    args = parser.parse_args()

    result = run_soak(
        source_kind=args.source,
        width=args.width,
        height=args.height,
        fps=args.fps,
        duration=args.duration,
        effect=args.effect,
        backend=args.backend,
        report_interval=args.report_interval,
        export_path=args.export,
    )

    sys.exit(0 if result["frames_processed"] > 0 else 1)


if __name__ == "__main__":
    main()
