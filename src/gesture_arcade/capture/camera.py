"""
Camera Capture Module
======================

Scoped camera acquisition for one selected device. Frames carry strictly
increasing millisecond timestamps and the hardware handle is released on
every exit path.
"""

import cv2
import time
import threading
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import numpy as np

from ..errors import CameraUnavailable
from .devices import DEFAULT_CAMERA_ID, resolve_device

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    width: int = 640
    height: int = 360
    fps: int = 30
    max_width: int = 960
    max_height: int = 720
    max_fps: int = 60
    default_index: int = 0
    buffer_size: int = 1  # Minimal buffering for low latency
    read_failure_limit: int = 30

    def __post_init__(self):
        self.width = min(self.width, self.max_width)
        self.height = min(self.height, self.max_height)
        self.fps = min(self.fps, self.max_fps)

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            width=config.get("width", 640),
            height=config.get("height", 360),
            fps=config.get("fps", 30),
            max_width=config.get("max_width", 960),
            max_height=config.get("max_height", 720),
            max_fps=config.get("max_fps", 60),
            default_index=config.get("default_index", 0),
            buffer_size=config.get("buffer_size", 1),
            read_failure_limit=config.get("read_failure_limit", 30),
        )


@dataclass
class Frame:
    """Container for captured frame with metadata."""
    image: np.ndarray
    timestamp: float  # milliseconds, strictly increasing within a session
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self.image.shape[:2]
        return (width, height)


class CameraSession:
    """
    Live capture bound to one device id.

    Example:
        >>> with CameraSession("default") as camera:
        ...     frame = camera.read()
    """

    def __init__(
        self,
        device_id: str = DEFAULT_CAMERA_ID,
        config: Optional[CameraConfig] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.device_id = device_id
        self.config = config or CameraConfig()
        self._clock = clock
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_number = 0
        self._last_timestamp: Optional[float] = None
        self._consecutive_failures = 0
        self._pending: Optional[np.ndarray] = None

        self._thread: Optional[threading.Thread] = None
        self._capturing = False
        self._lock = threading.Lock()

    def open(self) -> None:
        """
        Acquire the device.

        Raises:
            CameraUnavailable: if the device cannot be opened or read
        """
        source = resolve_device(self.device_id, self.config.default_index)
        logger.info("Opening camera %r (source=%r, %dx%d@%dfps)",
                    self.device_id, source, self.config.width,
                    self.config.height, self.config.fps)

        try:
            cap = cv2.VideoCapture(source)
        except cv2.error as e:
            raise CameraUnavailable("Unable to access camera {!r}: {}".format(self.device_id, e)) from e

        if not cap.isOpened():
            cap.release()
            raise CameraUnavailable(
                "Unable to access camera {!r}: device missing, busy or permission denied".format(
                    self.device_id))

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        # A camera that opens but never delivers is as good as missing
        ret, image = cap.read()
        if not ret or image is None:
            cap.release()
            raise CameraUnavailable("Camera {!r} opened but delivered no frames".format(self.device_id))

        self._cap = cap
        self._pending = image
        self._consecutive_failures = 0
        actual_width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Camera %r ready: %dx%d", self.device_id, actual_width, actual_height)

    def read(self) -> Optional[Frame]:
        """
        Capture a single frame.

        Returns:
            Frame, or None for a transient miss

        Raises:
            CameraUnavailable: if the camera is closed or the stream died
        """
        with self._lock:
            cap = self._cap
            image, self._pending = self._pending, None
        if cap is None:
            raise CameraUnavailable("Camera {!r} is not open".format(self.device_id))

        if image is None:
            ret, image = cap.read()
            if not ret or image is None:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self.config.read_failure_limit:
                    raise CameraUnavailable(
                        "Camera {!r} stopped delivering frames".format(self.device_id))
                return None

        self._consecutive_failures = 0
        self._frame_number += 1
        return Frame(
            image=self._fit(image),
            timestamp=self._next_timestamp(),
            frame_number=self._frame_number,
        )

    def _fit(self, image: np.ndarray) -> np.ndarray:
        """Downscale frames that exceed the hard resolution cap."""
        height, width = image.shape[:2]
        scale = min(self.config.max_width / width, self.config.max_height / height)
        if scale >= 1.0:
            return image
        size = (max(1, int(width * scale)), max(1, int(height * scale)))
        return cv2.resize(image, size, interpolation=cv2.INTER_AREA)

    def _next_timestamp(self) -> float:
        timestamp = self._clock() * 1000.0
        if self._last_timestamp is not None and timestamp <= self._last_timestamp:
            timestamp = self._last_timestamp + 0.001
        self._last_timestamp = timestamp
        return timestamp

    def start_capture(
        self,
        on_frame: Callable[[Frame], None],
        on_error: Callable[[CameraUnavailable], None],
    ) -> None:
        """Deliver every captured frame to ``on_frame`` from a background thread."""
        if self._capturing:
            return
        self._capturing = True
        self._thread = threading.Thread(
            target=self._capture_loop,
            args=(on_frame, on_error),
            name="camera-{}".format(self.device_id),
            daemon=True,
        )
        self._thread.start()
        logger.debug("Started threaded capture for %r", self.device_id)

    def _capture_loop(self, on_frame, on_error) -> None:
        """Background thread for continuous frame capture."""
        while self._capturing:
            try:
                frame = self.read()
            except CameraUnavailable as e:
                if self._capturing:
                    self._capturing = False
                    on_error(e)
                return
            if frame is None:
                time.sleep(0.001)
                continue
            if self._capturing:
                on_frame(frame)

    def stop_capture(self) -> None:
        """Stop the capture thread; never joins the calling thread."""
        self._capturing = False
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def close(self) -> None:
        """Stop capture and release the hardware handle."""
        self.stop_capture()
        with self._lock:
            cap, self._cap = self._cap, None
            self._pending = None
        if cap is not None:
            cap.release()
            logger.info("Camera %r released", self.device_id)

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
