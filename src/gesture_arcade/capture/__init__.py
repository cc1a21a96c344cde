"""Camera acquisition and device selection."""
from .camera import CameraSession, CameraConfig, Frame
from .devices import DEFAULT_CAMERA_ID, CameraOption, detect_camera_options, resolve_device

__all__ = [
    "CameraSession", "CameraConfig", "Frame",
    "DEFAULT_CAMERA_ID", "CameraOption", "detect_camera_options", "resolve_device",
]
