"""
Frame Report Model
==================

Payload served to the web viewer for the latest rendered frame.

Output Contract:
    {
        "frame": "data:image/jpeg;base64,...",
        "fps": 24.3,
        "processing_ms": 6.1,
        "resolution": "640x480",
        "timestamp": "2026-01-01T12:00:00Z",
        "effects": ["Normal", "Invert", "Grayscale", "Sepia"],
        "current_effect": "Sepia",
        "status": "success",
        "message": null
    }

`status` is "no_frame" before anything has been rendered (frame is null,
resolution "0x0"), and "error" if encoding failed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from edgecam.models.effect import Effect


class FrameStatus(str, Enum):
    """Availability of the latest frame."""

    SUCCESS = "success"
    NO_FRAME = "no_frame"
    ERROR = "error"


class FrameReport(BaseModel):
    """
    Latest-frame payload for the viewer.

    Attributes:
        frame: JPEG data URI, or None when unavailable
        fps: Measured processed frame rate
        processing_ms: Duration of the last edge detection pass
        resolution: "WIDTHxHEIGHT"
        timestamp: When the report was built (UTC)
        effects: Selectable effect names, in id order
        current_effect: Name of the active effect
        status: success / no_frame / error
        message: Human-readable detail for non-success statuses
    """

    frame: Optional[str] = Field(
        default=None,
        description="JPEG frame as a data URI",
    )
    fps: float = Field(default=0.0, ge=0.0, description="Processed frames per second")
    processing_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Last edge detection duration in milliseconds",
    )
    resolution: str = Field(default="0x0", description="Frame size, WIDTHxHEIGHT")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Report creation time",
    )
    effects: List[str] = Field(
        default_factory=Effect.labels,
        description="Available effect names",
    )
    current_effect: str = Field(
        default=Effect.NORMAL.label,
        description="Active effect name",
    )
    status: FrameStatus = Field(default=FrameStatus.NO_FRAME)
    message: Optional[str] = Field(default=None)
