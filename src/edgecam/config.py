"""
EdgeCam Configuration
=====================

Typed settings for every EdgeCam component.

Resolution order, last wins:
    defaults -> config.yaml (or $EDGECAM_CONFIG) -> environment

Environment variables:
    EDGECAM_CAPTURE_SOURCE  -> capture.source
    EDGECAM_CAMERA_INDEX    -> capture.device_index
    EDGECAM_CAPTURE_FPS     -> capture.fps
    EDGECAM_RENDER_BACKEND  -> render.backend
    EDGECAM_EFFECT          -> render.effect
    EDGECAM_EXPORT_PATH     -> export.path
    EDGECAM_PORT            -> server.port
    EDGECAM_LOG_LEVEL       -> logging.level
    PORT                    -> server.port (takes precedence over EDGECAM_PORT)

Example:
    from edgecam.config import settings

    print(settings.capture.source)
    print(settings.render.backend)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Application identification."""

    name: str = Field(default="edgecam", description="Application name")
    version: str = Field(default="v0.1.0", description="Application version")


class CaptureConfig(BaseModel):
    """Frame source configuration."""

    source: str = Field(
        default="camera",
        description="Frame source: 'camera' or 'synthetic'",
    )
    device_index: int = Field(default=0, ge=0, description="Camera device index")
    width: Optional[int] = Field(
        default=640,
        ge=1,
        description="Requested frame width (None = device default)",
    )
    height: Optional[int] = Field(
        default=480,
        ge=1,
        description="Requested frame height (None = device default)",
    )
    fps: float = Field(
        default=30.0,
        gt=0,
        description="Synthetic source frame rate",
    )


class PipelineConfig(BaseModel):
    """Processing pipeline configuration."""

    shutdown_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Maximum wait for the in-flight frame on shutdown",
    )


class RenderConfig(BaseModel):
    """Renderer configuration."""

    backend: str = Field(
        default="software",
        description="Render backend: 'software' or 'gl'",
    )
    effect: Union[int, str] = Field(
        default=0,
        description="Initial effect id or name (0=Normal, 1=Invert, 2=Grayscale, 3=Sepia)",
    )
    max_fps: float = Field(
        default=60.0,
        gt=0,
        description="Maximum redraw rate",
    )
    idle_redraw_seconds: float = Field(
        default=0.5,
        gt=0,
        description="Redraw period when no new frame arrives",
    )


class ExportConfig(BaseModel):
    """Frame export configuration."""

    path: str = Field(
        default="./processed_frame.jpg",
        description="Destination of exported frames",
    )
    jpeg_quality: int = Field(default=90, ge=1, le=100, description="JPEG quality")


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3001, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for EdgeCam.

    One section per component; see load_config() for how values resolve.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

DEFAULT_CONFIG_LOCATIONS = (
    Path("config.yaml"),
    Path("config.yml"),
    Path(__file__).resolve().parents[2] / "config.yaml",
)


def find_config_file() -> Optional[Path]:
    """Return EDGECAM_CONFIG if set, else the first default location that exists."""
    if explicit := os.environ.get("EDGECAM_CONFIG"):
        return Path(explicit)

    return next((p for p in DEFAULT_CONFIG_LOCATIONS if p.exists()), None)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Build Settings from defaults, an optional YAML file and the environment.

    Later sources win: defaults < YAML < environment variables.

    Args:
        config_path: YAML file to read. When omitted, find_config_file()
            decides.

    Returns:
        Settings: Validated configuration

    Raises:
        pydantic.ValidationError: If a value violates its constraints
    """
    path = Path(config_path) if config_path is not None else find_config_file()

    raw: dict = {}
    if path is not None and path.is_file():
        logger.info(f"Reading configuration file {path}")
        with path.open("r") as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Configuration file not found ({path}); using defaults")

    _apply_env_overrides(raw)

    return Settings.model_validate(raw)


def _section(data: dict, name: str) -> dict:
    return data.setdefault(name, {})


def _apply_env_overrides(config_data: dict) -> None:
    """Copy EDGECAM_* (and PORT) environment variables into config_data."""

    # Capture
    if value := os.environ.get("EDGECAM_CAPTURE_SOURCE"):
        _section(config_data, "capture")["source"] = value
    if value := os.environ.get("EDGECAM_CAMERA_INDEX"):
        _section(config_data, "capture")["device_index"] = int(value)
    if value := os.environ.get("EDGECAM_CAPTURE_FPS"):
        _section(config_data, "capture")["fps"] = float(value)

    # Render; effect may be an id or a name, so it stays a string here
    if value := os.environ.get("EDGECAM_RENDER_BACKEND"):
        _section(config_data, "render")["backend"] = value
    if value := os.environ.get("EDGECAM_EFFECT"):
        _section(config_data, "render")["effect"] = value

    # Export
    if value := os.environ.get("EDGECAM_EXPORT_PATH"):
        _section(config_data, "export")["path"] = value

    # Server; PORT is what hosting platforms set
    if value := os.environ.get("PORT") or os.environ.get("EDGECAM_PORT"):
        _section(config_data, "server")["port"] = int(value)

    # Logging
    if value := os.environ.get("EDGECAM_LOG_LEVEL"):
        _section(config_data, "logging")["level"] = value


LOG_FORMATS = {
    "json": (
        '{"time": "%(asctime)s", "level": "%(levelname)s", '
        '"thread": "%(threadName)s", "module": "%(name)s", '
        '"message": "%(message)s"}'
    ),
    "text": "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s",
}


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings.logging."""
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    fmt = LOG_FORMATS.get(settings.logging.format, LOG_FORMATS["text"])

    logging.basicConfig(level=level, format=fmt, datefmt="%Y-%m-%dT%H:%M:%S")


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = load_config()
setup_logging(settings)
