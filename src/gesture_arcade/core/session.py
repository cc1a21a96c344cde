"""
Tracking session orchestrator.

Owns the camera, the two axis filters, the track-loss arbiter and the
preview encoder for the lifetime of one selected device, and publishes an
immutable TrackingSnapshot after every processed frame.

Architecture:
    CameraSession -> HandDetector -> PointExtractor
    -> {OneEuroFilter x2, TrackLossArbiter} -> TrackingSnapshot
    PreviewEncoder runs off the same frames on the delivery thread.

States:
    STARTING -> READY -> STOPPED
    STARTING/READY -> FAILED (terminal, camera released)
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from ..capture.camera import CameraConfig, CameraSession, Frame
from ..capture.devices import DEFAULT_CAMERA_ID
from ..detection.hand_detector import HandDetectorConfig, HandLandmarks, get_landmark_detector
from ..detection.point_extractor import PointExtractor
from ..errors import CameraUnavailable, DetectionFailure, ModelUnavailable, TrackingError
from ..tracking.one_euro import FilterConfig, OneEuroFilter
from ..tracking.preview import PreviewConfig, PreviewEncoder
from ..tracking.track_loss import TrackLossArbiter
from ..utils.performance import PerformanceMetrics, PerformanceMonitor
from .events import EventBus, Events
from .types import INITIAL_SNAPSHOT, SessionState, TrackingSnapshot

logger = logging.getLogger(__name__)

FRAME_DELIVERY_MODES = ("callback", "timer")


@dataclass
class SessionConfig:
    """Everything one tracking session needs."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    detector: HandDetectorConfig = field(default_factory=HandDetectorConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    lost_track_hold_ms: float = 120.0
    threaded: bool = True
    frame_delivery: str = "callback"  # camera notifies per frame, or "timer" polling
    timer_interval_ms: float = 33.0

    @classmethod
    def from_dict(cls, config: dict, profile: Optional[str] = None) -> "SessionConfig":
        """
        Create config from the parsed YAML document.

        Args:
            config: Parsed configuration
            profile: Optional name under ``filter_profiles`` (per-game tuning)
        """
        tracking = config.get("tracking", {})
        frame_delivery = tracking.get("frame_delivery", "callback")
        if frame_delivery not in FRAME_DELIVERY_MODES:
            logger.warning("Unknown frame delivery %r, using 'callback'", frame_delivery)
            frame_delivery = "callback"

        return cls(
            camera=CameraConfig.from_dict(config.get("camera", {})),
            detector=HandDetectorConfig.from_dict(config.get("mediapipe", {})),
            filter=_filter_config(config, profile),
            preview=PreviewConfig.from_dict(config.get("preview", {})),
            lost_track_hold_ms=tracking.get("lost_track_hold_ms", 120.0),
            threaded=tracking.get("threaded", True),
            frame_delivery=frame_delivery,
            timer_interval_ms=tracking.get("timer_interval_ms", 33.0),
        )


def _filter_config(config: dict, profile: Optional[str]) -> FilterConfig:
    base = dict(config.get("filter", {}))
    if profile:
        profiles = config.get("filter_profiles", {}) or {}
        if profile in profiles:
            base.update(profiles[profile] or {})
        else:
            logger.warning("Unknown filter profile %r, using default filter", profile)
    return FilterConfig.from_dict(base)


class TrackingSession:
    """
    Gesture tracking for one camera device.

    A session is single-use: after it stops or fails, build a new one.

    Example:
        >>> session = TrackingSession("default")
        >>> session.subscribe(lambda snapshot: print(snapshot.x, snapshot.y))
        >>> session.start()
        >>> ...
        >>> session.stop()
    """

    def __init__(
        self,
        device_id: str = DEFAULT_CAMERA_ID,
        config: Optional[SessionConfig] = None,
        camera_factory: Callable[[str, CameraConfig], CameraSession] = CameraSession,
        detector_provider: Callable = get_landmark_detector,
        event_bus: Optional[EventBus] = None,
    ):
        self.device_id = device_id
        self.config = config or SessionConfig()
        self._camera_factory = camera_factory
        self._detector_provider = detector_provider
        self._bus = event_bus or EventBus()

        self._extractor = PointExtractor()
        self._arbiter = TrackLossArbiter(
            OneEuroFilter.from_config(self.config.filter),
            OneEuroFilter.from_config(self.config.filter),
            hold_ms=self.config.lost_track_hold_ms,
        )
        self._preview = PreviewEncoder(self.config.preview)
        self._perf = PerformanceMonitor()

        self._lock = threading.RLock()
        self._cancelled = threading.Event()
        self._state = SessionState.STARTING
        self._started = False
        self._snapshot = INITIAL_SNAPSHOT

        self._camera: Optional[CameraSession] = None
        self._detector = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._detect_busy = False
        self._detect_thread: Optional[threading.Thread] = None
        self._timer_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> TrackingSnapshot:
        """
        Acquire the camera and the detector, then begin frame delivery.

        Failures never raise; they end the session and are reported through
        the snapshot ``error`` field.
        """
        with self._lock:
            if self._started or self._state is not SessionState.STARTING:
                raise RuntimeError("TrackingSession cannot be restarted; create a new session")
            self._started = True

        logger.info("Starting tracking session for camera %r", self.device_id)
        try:
            camera = self._camera_factory(self.device_id, self.config.camera)
            camera.open()
        except CameraUnavailable as e:
            self._fail(e)
            return self.snapshot

        with self._lock:
            if self._cancelled.is_set():
                camera.close()
                return self._snapshot
            self._camera = camera
            self._state = SessionState.READY
            self._snapshot = TrackingSnapshot(ready=True)

        self._bus.emit(Events.SESSION_READY, device_id=self.device_id)
        self._publish()

        try:
            detector = self._detector_provider(self.config.detector)
        except ModelUnavailable as e:
            self._fail(e)
            return self.snapshot
        except Exception as e:  # the model loader is a black box
            self._fail(ModelUnavailable("Could not load hand landmark model: {}".format(e)))
            return self.snapshot

        with self._lock:
            if self._cancelled.is_set():
                return self._snapshot
            self._detector = detector
            if self.config.threaded:
                self._begin_delivery()

        logger.info("Tracking session for camera %r is ready", self.device_id)
        return self.snapshot

    def _begin_delivery(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="hand-detect")
        if self.config.frame_delivery == "timer":
            self._timer_thread = threading.Thread(
                target=self._timer_loop, name="frame-timer", daemon=True)
            self._timer_thread.start()
        else:
            self._camera.start_capture(self._on_frame, self._on_camera_error)

    def _timer_loop(self) -> None:
        """Fixed-rate polling fallback for cameras without frame notifications."""
        interval = self.config.timer_interval_ms / 1000.0
        camera = self._camera
        while not self._cancelled.is_set():
            started = time.perf_counter()
            try:
                frame = camera.read()
            except CameraUnavailable as e:
                self._on_camera_error(e)
                return
            if frame is not None:
                self._on_frame(frame)
            remaining = interval - (time.perf_counter() - started)
            if remaining > 0:
                self._cancelled.wait(remaining)

    def step(self) -> TrackingSnapshot:
        """Read and process one frame inline (non-threaded sessions only)."""
        if self.config.threaded:
            raise RuntimeError("step() requires a session configured with threaded=False")

        with self._lock:
            camera = self._camera
            if self._state is not SessionState.READY or camera is None or self._detector is None:
                return self._snapshot

        try:
            frame = camera.read()
        except CameraUnavailable as e:
            self._fail(e)
            return self.snapshot

        if frame is not None:
            self._on_frame(frame)
        return self.snapshot

    def stop(self) -> None:
        """
        Tear the session down.

        Returns after frame delivery has stopped and the camera is released.
        Safe to call more than once and from a snapshot listener.
        """
        with self._lock:
            if self._state is SessionState.STOPPED:
                return
            self._cancelled.set()
            self._state = SessionState.STOPPED
            camera, self._camera = self._camera, None
            timer, self._timer_thread = self._timer_thread, None
            executor, self._executor = self._executor, None

        current = threading.current_thread()
        if timer is not None and timer is not current:
            timer.join(timeout=1.0)
        if camera is not None:
            camera.close()
        if executor is not None:
            executor.shutdown(wait=current is not self._detect_thread)

        with self._lock:
            self._arbiter.reset()
            self._preview.reset()
            self._detect_busy = False
            self._snapshot = TrackingSnapshot(error=self._snapshot.error)

        logger.info("Tracking session for camera %r stopped", self.device_id)
        self._bus.emit(Events.SESSION_STOPPED, device_id=self.device_id)

    def _fail(self, error: TrackingError) -> None:
        message = str(error) or "Unable to access the selected camera."
        with self._lock:
            if self._state.is_terminal:
                return
            self._cancelled.set()
            self._state = SessionState.FAILED
            self._snapshot = TrackingSnapshot(error=message)
            camera, self._camera = self._camera, None
            executor, self._executor = self._executor, None

        logger.error("Tracking session for camera %r failed: %s", self.device_id, message)
        if camera is not None:
            camera.close()
        if executor is not None:
            executor.shutdown(wait=False)

        self._bus.emit(Events.SESSION_FAILED, device_id=self.device_id, error=message)
        self._publish()

    def _on_camera_error(self, error: CameraUnavailable) -> None:
        self._fail(error)

    # ------------------------------------------------------------------
    # Frame path
    # ------------------------------------------------------------------

    def _on_frame(self, frame: Frame) -> None:
        if self._cancelled.is_set():
            return
        self._perf.frame_received()

        with self._perf.measure("preview"):
            preview = self._preview.offer(frame)

        if not self.config.threaded:
            self._process(frame)
            return

        publish = False
        with self._lock:
            if self._cancelled.is_set():
                return
            if self._detect_busy:
                # Detection for an earlier frame is still running
                self._perf.record_drop()
                if preview is not self._snapshot.frame:
                    self._snapshot = replace(self._snapshot, frame=preview)
                    publish = True
            else:
                self._detect_busy = True
                self._executor.submit(self._detect_task, frame)

        if publish:
            self._publish()

    def _detect_task(self, frame: Frame) -> None:
        self._detect_thread = threading.current_thread()
        try:
            self._process(frame)
        except Exception:
            logger.exception("Unexpected error processing frame %d", frame.frame_number)
        finally:
            with self._lock:
                self._detect_busy = False

    def _process(self, frame: Frame) -> None:
        hand = self._detect(frame)
        point = self._extractor.extract(hand)

        with self._lock:
            if self._cancelled.is_set() or self._state is not SessionState.READY:
                return
            was_lost = self._arbiter.is_lost
            smoothed = self._arbiter.update(point, frame.timestamp)
            self._perf.frame_processed(frame.timestamp)
            self._snapshot = TrackingSnapshot(
                x=smoothed.x if smoothed else None,
                y=smoothed.y if smoothed else None,
                gesture=smoothed.gesture.value if smoothed else None,
                frame=self._preview.latest,
                ready=True,
                error=None,
            )
            acquired = was_lost and not self._arbiter.is_lost
            lost = not was_lost and self._arbiter.is_lost

        if acquired:
            self._bus.emit(Events.HAND_ACQUIRED, device_id=self.device_id)
        elif lost:
            self._bus.emit(Events.HAND_LOST, device_id=self.device_id)
        self._publish()

    def _detect(self, frame: Frame) -> Optional[HandLandmarks]:
        """Run the detector; any failure counts as a missed detection."""
        try:
            with self._perf.measure("detection"):
                hand = self._detector.detect(frame.rgb, frame.timestamp)
            if hand is not None and not isinstance(hand, HandLandmarks):
                raise DetectionFailure("unexpected detector output: {!r}".format(type(hand)))
            return hand
        except Exception as e:  # the detector is a black box
            failures = self._perf.record_detection_failure()
            if failures == 1 or failures % 100 == 0:
                logger.warning("Hand detection failed (%d so far): %s", failures, e)
            return None

    def _publish(self) -> None:
        with self._lock:
            snapshot = self._snapshot
        self._bus.emit(Events.SNAPSHOT, snapshot=snapshot)

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[TrackingSnapshot], None]) -> Callable[[], None]:
        """
        Call ``callback(snapshot)`` on every republish.

        Returns:
            A function that removes the subscription
        """
        def listener(snapshot):
            callback(snapshot)

        self._bus.subscribe(Events.SNAPSHOT, listener)
        return lambda: self._bus.unsubscribe(Events.SNAPSHOT, listener)

    @property
    def snapshot(self) -> TrackingSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_detecting(self) -> bool:
        with self._lock:
            return self._detect_busy

    @property
    def events(self) -> EventBus:
        return self._bus

    @property
    def stats(self) -> PerformanceMetrics:
        return self._perf.get_metrics()

    def performance_report(self) -> str:
        return self._perf.get_report()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
