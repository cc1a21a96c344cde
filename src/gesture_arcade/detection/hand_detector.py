"""
Hand Detection Module - MediaPipe Tasks API
============================================

Wraps the MediaPipe HandLandmarker in VIDEO mode. One model load is shared
by every tracking session in the process (see ``get_landmark_detector``).
"""

import logging
import threading
import urllib.request
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import List, NamedTuple, Optional

import numpy as np

from ..errors import ModelUnavailable

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = Path.home() / ".cache" / "gesture_arcade" / "hand_landmarker.task"


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist


@dataclass
class HandDetectorConfig:
    """Configuration for hand detector."""
    model_path: str = ""
    model_url: str = HAND_LANDMARKER_MODEL_URL
    max_num_hands: int = 1
    min_detection_confidence: float = 0.4
    min_tracking_confidence: float = 0.4
    min_presence_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "HandDetectorConfig":
        """Create config from dictionary."""
        return cls(
            model_path=d.get("model_path", ""),
            model_url=d.get("model_url", HAND_LANDMARKER_MODEL_URL),
            max_num_hands=d.get("max_num_hands", 1),
            min_detection_confidence=d.get("min_detection_confidence", 0.4),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.4),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
        )


@dataclass
class HandLandmarks:
    """Landmark set for one detected hand."""
    landmarks: List[Optional[Landmark]]
    handedness: str = "Right"
    confidence: float = 0.0

    def get(self, index: int) -> Optional[Landmark]:
        """Get landmark by index, or None if the detector did not report it."""
        if 0 <= index < len(self.landmarks):
            return self.landmarks[index]
        return None

    def to_numpy(self) -> np.ndarray:
        """Convert landmarks to numpy array of shape (N, 3)."""
        return np.array([[lm.x, lm.y, lm.z] for lm in self.landmarks if lm is not None])


def download_model(url: str, save_path: Path) -> Path:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        return save_path

    save_path.parent.mkdir(parents=True, exist_ok=True)
    partial = save_path.with_suffix(save_path.suffix + ".part")
    logger.info("Downloading hand landmarker model to %s...", save_path)
    try:
        urllib.request.urlretrieve(url, str(partial))
        partial.replace(save_path)
    except (OSError, ValueError) as e:
        partial.unlink(missing_ok=True)
        raise ModelUnavailable("Could not download hand landmark model: {}".format(e)) from e
    logger.info("Model download complete")
    return save_path


class HandDetector:
    """
    Hand detection wrapper using MediaPipe Tasks API (HandLandmarker).

    Example:
        >>> detector = HandDetector(HandDetectorConfig())
        >>> detector.start()
        >>> hand = detector.detect(rgb_image, timestamp_ms)  # RGB format!
        >>> detector.stop()
    """

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker = None
        self._mp = None
        self._last_timestamp = -1

    def start(self) -> None:
        """
        Load the hand landmarker.

        Raises:
            ModelUnavailable: if MediaPipe or the model asset cannot be loaded
        """
        model_path = Path(self.config.model_path) if self.config.model_path else DEFAULT_MODEL_PATH
        model_path = download_model(self.config.model_url, model_path)

        try:
            import mediapipe as mp
            from mediapipe.tasks import python
            from mediapipe.tasks.python import vision
        except ImportError as e:
            raise ModelUnavailable("MediaPipe is not installed: {}".format(e)) from e

        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.config.max_num_hands,
            min_hand_detection_confidence=self.config.min_detection_confidence,
            min_hand_presence_confidence=self.config.min_presence_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )
        try:
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise ModelUnavailable("Could not initialize hand landmarker: {}".format(e)) from e
        self._mp = mp

        logger.info("HandLandmarker initialized with model: %s", model_path)

    def stop(self) -> None:
        """Release resources."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
        logger.info("HandLandmarker stopped")

    def detect(self, image: np.ndarray, timestamp_ms: float) -> Optional[HandLandmarks]:
        """
        Detect the first hand in the given image.

        Args:
            image: RGB image as numpy array (H, W, 3)
            timestamp_ms: Frame timestamp in milliseconds

        Returns:
            HandLandmarks for the first detected hand, or None
        """
        if self._landmarker is None:
            raise RuntimeError("HandLandmarker not initialized. Call start() first.")

        # VIDEO mode rejects timestamps that do not increase
        timestamp = int(timestamp_ms)
        if timestamp <= self._last_timestamp:
            timestamp = self._last_timestamp + 1
        self._last_timestamp = timestamp

        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=image)
        result = self._landmarker.detect_for_video(mp_image, timestamp)

        if not result.hand_landmarks:
            return None

        handedness = "Right"
        confidence = 0.0
        if result.handedness and result.handedness[0]:
            handedness = result.handedness[0][0].category_name
            confidence = result.handedness[0][0].score

        return HandLandmarks(
            landmarks=[Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in result.hand_landmarks[0]],
            handedness=handedness,
            confidence=confidence,
        )

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


_shared_detector: Optional[HandDetector] = None
_shared_lock = threading.Lock()


def get_landmark_detector(config: Optional[HandDetectorConfig] = None) -> HandDetector:
    """
    Return the process-wide detector, loading the model on first use.

    Failed loads are not cached, so a later session can retry.

    Raises:
        ModelUnavailable: if the model cannot be loaded
    """
    global _shared_detector
    with _shared_lock:
        if _shared_detector is None:
            detector = HandDetector(config)
            detector.start()
            _shared_detector = detector
        return _shared_detector
