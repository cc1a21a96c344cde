"""
Shared domain types for the tracking core.

Centralizes enums and data classes used across modules to avoid circular
imports between detection, tracking and the session.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GestureTag(Enum):
    """Which landmark strategy produced the control point."""
    POINT = "point"
    PALM = "palm"


class SessionState(Enum):
    """Lifecycle of a tracking session."""
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.FAILED, SessionState.STOPPED)


@dataclass(frozen=True)
class ControlPoint:
    """Normalized control point; x is mirrored to match the preview."""
    x: float
    y: float
    gesture: GestureTag


@dataclass(frozen=True)
class PreviewFrame:
    """Encoded, mirrored camera thumbnail."""
    data: bytes  # JPEG
    width: int
    height: int
    timestamp: float

    def to_data_url(self) -> str:
        return "data:image/jpeg;base64," + base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class TrackingSnapshot:
    """The only externally visible tracking state, republished every frame."""
    x: Optional[float] = None
    y: Optional[float] = None
    gesture: Optional[str] = None
    frame: Optional[PreviewFrame] = None
    ready: bool = False
    error: Optional[str] = None

    @property
    def has_point(self) -> bool:
        return self.x is not None and self.y is not None

    def as_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "gesture": self.gesture,
            "frame": self.frame,
            "ready": self.ready,
            "error": self.error,
        }


INITIAL_SNAPSHOT = TrackingSnapshot()
