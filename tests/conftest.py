"""Shared fixtures for tracking tests."""

import sys
import threading
import time
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gesture_arcade.capture.camera import Frame
from gesture_arcade.detection.hand_detector import HandLandmarks, Landmark, LandmarkIndex
from gesture_arcade.errors import CameraUnavailable


def make_frame(timestamp: float, frame_number: int = 1, width: int = 64, height: int = 36) -> Frame:
    """Small BGR frame with a bright left half."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, : width // 2] = 255
    return Frame(image=image, timestamp=timestamp, frame_number=frame_number)


def make_hand(tip=(0.25, 0.4), palm=(0.3, 0.6), missing=()) -> HandLandmarks:
    """
    Build a 21-landmark hand.

    Args:
        tip: Raw (unmirrored) index fingertip position, or None to drop it
        palm: Position for every other landmark
        missing: Landmark indices reported as None
    """
    landmarks = [Landmark(x=palm[0], y=palm[1]) for _ in range(21)]
    if tip is None:
        landmarks[LandmarkIndex.INDEX_TIP] = None
    else:
        landmarks[LandmarkIndex.INDEX_TIP] = Landmark(x=tip[0], y=tip[1])
    for index in missing:
        landmarks[index] = None
    return HandLandmarks(landmarks=landmarks)


class FakeCamera:
    """Scripted stand-in for CameraSession."""

    def __init__(self, frames=(), fail_open=False):
        self.frames = list(frames)
        self.fail_open = fail_open
        self.opened = False
        self.close_calls = 0
        self.on_frame = None
        self.on_error = None

    def open(self):
        if self.fail_open:
            raise CameraUnavailable("Unable to access the selected camera.")
        self.opened = True

    def read(self):
        if not self.frames:
            raise CameraUnavailable("Camera stopped delivering frames")
        return self.frames.pop(0)

    def start_capture(self, on_frame, on_error):
        self.on_frame = on_frame
        self.on_error = on_error

    def close(self):
        self.close_calls += 1
        self.opened = False


class FakeDetector:
    """Returns scripted results; an Exception instance in the script is raised."""

    def __init__(self, results=()):
        self.results = list(results)
        self.calls = 0

    def detect(self, image, timestamp_ms):
        self.calls += 1
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


class BlockingDetector:
    """Holds detection until ``release`` is set."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def detect(self, image, timestamp_ms):
        self.calls += 1
        self.entered.set()
        self.release.wait(timeout=2.0)
        return make_hand()


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def frame_factory():
    return make_frame


@pytest.fixture
def hand_factory():
    return make_hand
