"""
Device selection glue.

Keeps at most one TrackingSession alive. Selecting a different device
always tears the current session down and builds a fresh one; filter and
arbiter state never carry across devices.
"""

import logging
import threading
from typing import Callable, List, Optional

from ..capture.devices import DEFAULT_CAMERA_ID
from .session import SessionConfig, TrackingSession
from .types import INITIAL_SNAPSHOT, SessionState, TrackingSnapshot

logger = logging.getLogger(__name__)


class TrackingController:
    """Owns the active tracking session and fans snapshots out to consumers."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        session_factory: Callable[..., TrackingSession] = TrackingSession,
    ):
        self.config = config or SessionConfig()
        self._session_factory = session_factory
        self._session: Optional[TrackingSession] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._device_id: Optional[str] = None
        self._listeners: List[Callable[[TrackingSnapshot], None]] = []
        self._lock = threading.RLock()

    def select_device(self, device_id: Optional[str] = DEFAULT_CAMERA_ID) -> TrackingSnapshot:
        """
        Switch tracking to ``device_id``.

        Re-selecting the current device is a no-op unless its session failed,
        in which case a new session is built (the explicit retry path).
        The previous session is stopped, and its camera released, before the
        new one starts.
        """
        device_id = device_id or DEFAULT_CAMERA_ID
        with self._lock:
            current = self._session
            if (current is not None and device_id == self._device_id
                    and current.state is not SessionState.FAILED):
                return current.snapshot

        session = self._session_factory(device_id, self.config)
        unsubscribe = session.subscribe(lambda snapshot: self._dispatch(session, snapshot))

        with self._lock:
            previous, self._session = self._session, session
            previous_unsubscribe, self._unsubscribe = self._unsubscribe, unsubscribe
            previous_device, self._device_id = self._device_id, device_id

        # Never stop a session while holding the lock: its worker may be
        # waiting for it inside _dispatch.
        if previous is not None:
            logger.info("Switching camera %r -> %r", previous_device, device_id)
            self._retire(previous, previous_unsubscribe)

        return session.start()

    def _dispatch(self, source: TrackingSession, snapshot: TrackingSnapshot) -> None:
        with self._lock:
            # Late publishes from a replaced session are discarded
            if source is not self._session:
                return
            for listener in list(self._listeners):
                try:
                    listener(snapshot)
                except Exception as e:
                    logger.error("Snapshot listener %r failed: %s", listener, e)

    @staticmethod
    def _retire(session: TrackingSession, unsubscribe: Optional[Callable[[], None]]) -> None:
        if unsubscribe is not None:
            unsubscribe()
        session.stop()

    def subscribe(self, callback: Callable[[TrackingSnapshot], None]) -> Callable[[], None]:
        """Receive snapshots from whichever session is active."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def close(self) -> None:
        """Stop the active session, if any."""
        with self._lock:
            session, self._session = self._session, None
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            self._device_id = None
        if session is not None:
            self._retire(session, unsubscribe)

    @property
    def session(self) -> Optional[TrackingSession]:
        return self._session

    @property
    def device_id(self) -> Optional[str]:
        return self._device_id

    @property
    def snapshot(self) -> TrackingSnapshot:
        session = self._session
        return session.snapshot if session is not None else INITIAL_SNAPSHOT

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
