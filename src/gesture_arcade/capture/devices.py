"""
Camera device selection helpers.

Device ids are plain strings so consumers can persist the last selection
however they like. ``DEFAULT_CAMERA_ID`` asks for the platform default.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import cv2

logger = logging.getLogger(__name__)

DEFAULT_CAMERA_ID = "default"

_SYSFS_VIDEO_DIR = Path("/sys/class/video4linux")


@dataclass(frozen=True)
class CameraOption:
    """A selectable camera."""
    id: str
    label: str


FALLBACK_CAMERA = CameraOption(id=DEFAULT_CAMERA_ID, label="Default Camera")


def resolve_device(device_id: str, default_index: int = 0) -> Union[int, str]:
    """
    Map a device id to an OpenCV capture source.

    Args:
        device_id: ``DEFAULT_CAMERA_ID`` (or empty), a numeric index string,
            or a device path / stream URL
        default_index: Index used for the default device

    Returns:
        An integer index or a string source for ``cv2.VideoCapture``
    """
    if device_id is None:
        return default_index
    device_id = str(device_id).strip()
    if not device_id or device_id == DEFAULT_CAMERA_ID:
        return default_index
    if device_id.isdigit():
        return int(device_id)
    return device_id


def camera_label(index: int) -> str:
    """Human-readable label for an OpenCV index."""
    name_file = _SYSFS_VIDEO_DIR / "video{}".format(index) / "name"
    try:
        label = name_file.read_text().strip()
    except OSError:
        label = ""
    return label if label else "Camera {}".format(index + 1)


def probe_camera(index: int) -> bool:
    """Check that the camera at ``index`` opens and delivers a frame."""
    cap = cv2.VideoCapture(index)
    try:
        if not cap.isOpened():
            return False
        ret, frame = cap.read()
        return bool(ret) and frame is not None
    finally:
        cap.release()


def detect_camera_options(max_devices: int = 10) -> List[CameraOption]:
    """
    List working cameras.

    Falls back to a single default option when probing finds nothing, so
    callers always have something to select.
    """
    options = []
    for index in range(max_devices):
        if probe_camera(index):
            options.append(CameraOption(id=str(index), label=camera_label(index)))

    if not options:
        logger.warning("No cameras found by probing, offering the default device")
        return [FALLBACK_CAMERA]

    logger.info("Found %d camera(s): %s", len(options),
                ", ".join(option.label for option in options))
    return options
