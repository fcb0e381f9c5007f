"""
App Lifecycle Tests
===================

Startup and shutdown of the FastAPI lifespan. Kept apart from test_app so
the shared module-scoped client is not running alongside these apps.
"""

import inspect
import threading

import pytest
from fastapi.testclient import TestClient

from edgecam import main
from edgecam.config import settings
from edgecam.main import app


WORKER_THREADS = {"render-loop", "synthetic-source", "camera-source"}


def live_worker_threads():
    return [
        t.name for t in threading.enumerate()
        if t.is_alive() and t.name in WORKER_THREADS
    ]


class TestLifespan:
    """Background threads never outlive the app."""

    def test_failed_startup_stops_render_loop(self, monkeypatch):
        """A bad capture source fails startup after the render loop is up."""
        monkeypatch.setattr(settings.capture, "source", "bogus")

        with pytest.raises(ValueError):
            with TestClient(app):
                pass

        assert live_worker_threads() == []
        assert main.get_pipeline() is None
        assert main.get_exporter() is None

    def test_clean_shutdown_joins_threads(self):
        with TestClient(app) as client:
            assert client.get("/api/health").status_code == 200
            assert "render-loop" in live_worker_threads()

        assert live_worker_threads() == []
        assert main.get_pipeline() is None


class TestEndpointDispatch:
    def test_encoding_endpoints_run_off_the_event_loop(self):
        """JPEG-encoding handlers are sync so Starlette uses its threadpool."""
        assert not inspect.iscoroutinefunction(main.frame)
        assert not inspect.iscoroutinefunction(main.export)
