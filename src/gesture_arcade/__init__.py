"""
Gesture Arcade Tracking Core
=============================

Webcam hand tracking that turns a camera feed into a smoothed, normalized
2-D control signal shared by every gesture-controlled arcade game.

Modules:
    - capture: Camera acquisition and device selection
    - detection: MediaPipe hand landmarks and control point extraction
    - tracking: One Euro smoothing, track-loss hysteresis, preview encoding
    - core: Tracking session state machine and device controller
    - utils: Configuration, logging, performance, visualization
"""

from .core.types import GestureTag, SessionState, TrackingSnapshot
from .core.session import TrackingSession, SessionConfig
from .core.controller import TrackingController
from .capture.devices import DEFAULT_CAMERA_ID

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_CAMERA_ID",
    "GestureTag",
    "SessionConfig",
    "SessionState",
    "TrackingController",
    "TrackingSession",
    "TrackingSnapshot",
]
