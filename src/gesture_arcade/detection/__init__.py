"""Hand landmark detection and control point extraction."""
from .hand_detector import (
    HandDetector, HandDetectorConfig, HandLandmarks, Landmark, LandmarkIndex,
    get_landmark_detector,
)
from .point_extractor import PointExtractor

__all__ = [
    "HandDetector", "HandDetectorConfig", "HandLandmarks", "Landmark", "LandmarkIndex",
    "get_landmark_detector", "PointExtractor",
]
