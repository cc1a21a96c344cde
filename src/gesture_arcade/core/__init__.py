"""Tracking session state machine, events and device controller."""
from .types import (
    ControlPoint, GestureTag, PreviewFrame, SessionState, TrackingSnapshot, INITIAL_SNAPSHOT,
)
from .events import EventBus, Events
from .session import SessionConfig, TrackingSession
from .controller import TrackingController

__all__ = [
    "ControlPoint", "GestureTag", "PreviewFrame", "SessionState", "TrackingSnapshot",
    "INITIAL_SNAPSHOT", "EventBus", "Events", "SessionConfig", "TrackingSession",
    "TrackingController",
]
