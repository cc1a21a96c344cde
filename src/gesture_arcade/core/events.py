"""
Lightweight event bus for snapshot consumers.

Each tracking session owns its own bus, so listeners never see events from
a previous device's session.

Usage:
    bus = EventBus()
    bus.subscribe(Events.SNAPSHOT, on_snapshot)
    bus.emit(Events.SNAPSHOT, snapshot=snapshot)
"""

import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus with priority ordering."""

    def __init__(self):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners.

        A failing listener is logged and does not affect the others.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())


class Events:
    """Standard event names used by tracking sessions."""

    SESSION_READY = "session_ready"
    SNAPSHOT = "snapshot"
    HAND_ACQUIRED = "hand_acquired"
    HAND_LOST = "hand_lost"
    SESSION_FAILED = "session_failed"
    SESSION_STOPPED = "session_stopped"
