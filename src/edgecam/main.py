"""
EdgeCam Main Application
========================

FastAPI entry point wiring the capture source, processing pipeline,
renderer and export side channel.

Threads:
    capture source  -> ProcessingPipeline.submit (drop-on-busy)
    edge worker     -> FrameSlot.write + redraw request
    render loop     -> EffectRenderer.on_draw_frame
    server          -> reads renderer snapshots only

Endpoints:
    GET  /            - Service information
    GET  /api/health  - Liveness probe
    GET  /api/stats   - Pipeline, slot, renderer and source metrics
    GET  /api/frame   - Latest rendered frame report
    GET  /api/effect  - Active effect
    POST /api/effect  - Select effect ({"effect": 2} or {"effect": "sepia"})
    POST /api/export  - Write the latest frame to the export path
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from edgecam.config import settings
from edgecam.capture import FrameSource, create_source
from edgecam.export import ExportError, FrameExporter
from edgecam.models.effect import Effect
from edgecam.pipeline import FrameSlot, ProcessingPipeline
from edgecam.render import EffectRenderer, RenderLoop, create_surface


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_frame_slot: Optional[FrameSlot] = None
_renderer: Optional[EffectRenderer] = None
_render_loop: Optional[RenderLoop] = None
_pipeline: Optional[ProcessingPipeline] = None
_source: Optional[FrameSource] = None
_exporter: Optional[FrameExporter] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_pipeline() -> Optional[ProcessingPipeline]:
    return _pipeline

def get_renderer() -> Optional[EffectRenderer]:
    return _renderer

def get_exporter() -> Optional[FrameExporter]:
    return _exporter

def get_source() -> Optional[FrameSource]:
    return _source


# =============================================================================
# Request Models
# =============================================================================

class EffectRequest(BaseModel):
    """Effect selection body. Unknown values select Normal."""

    effect: Union[int, str] = Field(..., description="Effect id or name")


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the pipeline threads and tear them down in dependency order."""
    global _frame_slot, _renderer, _render_loop, _pipeline
    global _source, _exporter, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    _render_loop = _pipeline = _source = _exporter = None

    try:
        _frame_slot = FrameSlot()
        _renderer = EffectRenderer(_frame_slot, effect=settings.render.effect)

        _render_loop = RenderLoop(
            _renderer,
            surface_factory=lambda: create_surface(settings.render.backend),
            max_fps=settings.render.max_fps,
            idle_redraw_seconds=settings.render.idle_redraw_seconds,
        )
        _render_loop.start()

        _pipeline = ProcessingPipeline(
            slot=_frame_slot,
            on_frame_ready=_render_loop.request_redraw,
            renderer=_renderer,
            effect=settings.render.effect,
        )

        _exporter = FrameExporter(
            _renderer,
            path=settings.export.path,
            quality=settings.export.jpeg_quality,
            metrics=_pipeline.metrics,
        )

        _source = create_source(
            settings.capture.source,
            _pipeline.submit,
            device_index=settings.capture.device_index,
            width=settings.capture.width,
            height=settings.capture.height,
            fps=settings.capture.fps,
        )
        _source.start()

        logger.info("All components started")

        yield

    finally:
        logger.info("Shutting down gracefully...")

        # Producer first, then the worker (joined), then the consumer
        if _source:
            _source.stop()
        if _pipeline:
            _pipeline.shutdown(wait=True)
        if _render_loop:
            _render_loop.stop(timeout=settings.pipeline.shutdown_timeout_seconds)

        _source = _pipeline = _exporter = _render_loop = None

        logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="EdgeCam",
    description="Live camera edge detection with color effects",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "EdgeCam",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "capture_source": settings.capture.source,
        "render_backend": settings.render.backend,
        "endpoints": [
            "/api/frame",
            "/api/health",
            "/api/stats",
            "/api/effect",
            "/api/export",
        ],
    })


@app.get("/api/health")
async def health() -> JSONResponse:
    """Liveness probe. Always 200 while the process is up."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "server": "EdgeCam Frame API",
        "version": settings.app.version,
    })


@app.get("/api/stats")
async def stats() -> JSONResponse:
    """Detailed metrics for observability."""
    pipeline = get_pipeline()
    renderer = get_renderer()
    source = get_source()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "frame_available": bool(renderer and renderer.snapshot_version > 0),
        "pipeline": pipeline.metrics.to_dict() if pipeline else {},
        "slot": pipeline.slot.metrics() if pipeline else {},
        "renderer": renderer.metrics() if renderer else {},
        "source": source.metrics.to_dict() if source else {},
    })


@app.get("/api/frame")
def frame() -> JSONResponse:
    """Latest rendered frame as a viewer report. Runs in the threadpool (JPEG encode)."""
    exporter = get_exporter()

    if exporter is None:
        return JSONResponse(
            {"status": "error", "message": "Pipeline not initialized"},
            status_code=503,
        )

    report = exporter.report()
    return JSONResponse(report.model_dump(mode="json"))


@app.get("/api/effect")
async def get_effect() -> JSONResponse:
    """Active effect."""
    pipeline = get_pipeline()
    effect = pipeline.effect if pipeline else Effect.NORMAL
    return JSONResponse({
        "effect": int(effect),
        "name": effect.label,
        "effects": Effect.labels(),
    })


@app.post("/api/effect")
async def set_effect(request: EffectRequest) -> JSONResponse:
    """Select the effect for subsequent draws."""
    pipeline = get_pipeline()

    if pipeline is None:
        return JSONResponse(
            {"status": "error", "message": "Pipeline not initialized"},
            status_code=503,
        )

    effect = pipeline.set_effect(request.effect)
    if _render_loop:
        _render_loop.request_redraw()

    return JSONResponse({"effect": int(effect), "name": effect.label})


@app.post("/api/export")
def export() -> JSONResponse:
    """Write the latest rendered frame to the configured path. Runs in the threadpool."""
    exporter = get_exporter()

    if exporter is None:
        return JSONResponse(
            {"status": "error", "message": "Pipeline not initialized"},
            status_code=503,
        )

    try:
        path = exporter.export()
    except ExportError as e:
        logger.error(f"Export failed: {e}")
        return JSONResponse({"status": "error", "message": str(e)}, status_code=500)

    if path is None:
        return JSONResponse(
            {"status": "no_frame", "message": "No processed frame available yet"},
            status_code=503,
        )

    return JSONResponse({"status": "exported", "path": str(path)})


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "edgecam.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
