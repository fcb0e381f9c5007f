"""
Configuration Tests
===================
"""

import pytest
from pydantic import ValidationError

from edgecam.config import Settings, load_config


ENV_VARS = [
    "EDGECAM_CONFIG",
    "EDGECAM_CAPTURE_SOURCE",
    "EDGECAM_CAMERA_INDEX",
    "EDGECAM_CAPTURE_FPS",
    "EDGECAM_RENDER_BACKEND",
    "EDGECAM_EFFECT",
    "EDGECAM_EXPORT_PATH",
    "EDGECAM_PORT",
    "EDGECAM_LOG_LEVEL",
    "PORT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "capture:\n"
        "  source: synthetic\n"
        "  fps: 12.5\n"
        "render:\n"
        "  effect: 2\n"
        "server:\n"
        "  port: 8080\n"
    )
    return path


class TestDefaults:
    def test_defaults(self):
        settings = Settings()

        assert settings.capture.source == "camera"
        assert settings.render.backend == "software"
        assert settings.render.effect == 0
        assert settings.server.port == 3001
        assert settings.export.jpeg_quality == 90

    def test_missing_file_uses_defaults(self, clean_env, tmp_path):
        settings = load_config(str(tmp_path / "absent.yaml"))
        assert settings.capture.source == "camera"


class TestFileLoading:
    def test_values_from_yaml(self, clean_env, config_file):
        settings = load_config(str(config_file))

        assert settings.capture.source == "synthetic"
        assert settings.capture.fps == 12.5
        assert settings.render.effect == 2
        assert settings.server.port == 8080
        # Untouched sections keep defaults
        assert settings.capture.width == 640

    def test_config_path_from_env(self, clean_env, config_file):
        clean_env.setenv("EDGECAM_CONFIG", str(config_file))
        assert load_config().server.port == 8080

    def test_empty_file(self, clean_env, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)).server.port == 3001


class TestEnvOverrides:
    """Environment variables beat file values."""

    def test_env_overrides_file(self, clean_env, config_file):
        clean_env.setenv("EDGECAM_CAPTURE_SOURCE", "camera")
        clean_env.setenv("EDGECAM_CAMERA_INDEX", "2")
        clean_env.setenv("EDGECAM_RENDER_BACKEND", "gl")
        clean_env.setenv("EDGECAM_LOG_LEVEL", "DEBUG")

        settings = load_config(str(config_file))

        assert settings.capture.source == "camera"
        assert settings.capture.device_index == 2
        assert settings.render.backend == "gl"
        assert settings.logging.level == "DEBUG"

    def test_effect_by_name(self, clean_env, config_file):
        clean_env.setenv("EDGECAM_EFFECT", "sepia")
        assert load_config(str(config_file)).render.effect == "sepia"

    def test_port_precedence(self, clean_env, config_file):
        clean_env.setenv("EDGECAM_PORT", "4000")
        assert load_config(str(config_file)).server.port == 4000

        clean_env.setenv("PORT", "5000")
        assert load_config(str(config_file)).server.port == 5000


class TestValidation:
    @pytest.mark.parametrize(
        "data",
        [
            {"capture": {"fps": 0}},
            {"server": {"port": 70000}},
            {"export": {"jpeg_quality": 0}},
            {"render": {"max_fps": -1}},
        ],
    )
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValidationError):
            Settings.model_validate(data)
