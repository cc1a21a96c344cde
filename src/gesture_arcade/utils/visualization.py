"""
Visualization Module
=====================

Debug overlay for the demo: decodes the preview thumbnail and draws the
tracked cursor and session status on it.
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.types import TrackingSnapshot
from .performance import PerformanceMetrics


@dataclass
class VisualizerConfig:
    """Visualization settings."""
    show_cursor: bool = True
    show_status: bool = True
    show_fps: bool = True
    canvas_size: Tuple[int, int] = (480, 270)  # used until the first preview arrives

    # Colors (BGR format)
    point_color: Tuple[int, int, int] = (0, 255, 0)      # Green
    palm_color: Tuple[int, int, int] = (255, 200, 0)     # Cyan-ish
    text_color: Tuple[int, int, int] = (0, 255, 255)     # Yellow
    warning_color: Tuple[int, int, int] = (0, 0, 255)    # Red

    font_scale: float = 0.5
    font_thickness: int = 1

    @classmethod
    def from_dict(cls, config: dict) -> "VisualizerConfig":
        """Create config from dictionary."""
        colors = config.get("colors", {})
        return cls(
            show_cursor=config.get("show_cursor", True),
            show_status=config.get("show_status", True),
            show_fps=config.get("show_fps", True),
            canvas_size=tuple(config.get("canvas_size", [480, 270])),
            point_color=tuple(colors.get("point", [0, 255, 0])),
            palm_color=tuple(colors.get("palm", [255, 200, 0])),
            text_color=tuple(colors.get("text", [0, 255, 255])),
            warning_color=tuple(colors.get("warning", [0, 0, 255])),
            font_scale=config.get("font_scale", 0.5),
            font_thickness=config.get("font_thickness", 1),
        )


class Visualizer:
    """
    Renders a TrackingSnapshot for on-screen debugging.

    Example:
        >>> viz = Visualizer(VisualizerConfig())
        >>> image = viz.render(session.snapshot, session.stats)
        >>> cv2.imshow("tracking", image)
    """

    def __init__(self, config: Optional[VisualizerConfig] = None):
        self.config = config or VisualizerConfig()

    def decode_preview(self, snapshot: TrackingSnapshot) -> np.ndarray:
        """Decode the preview JPEG, or return a blank canvas."""
        if snapshot.frame is not None:
            buffer = np.frombuffer(snapshot.frame.data, dtype=np.uint8)
            image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
            if image is not None:
                return image
        width, height = self.config.canvas_size
        return np.zeros((height, width, 3), dtype=np.uint8)

    def render(
        self,
        snapshot: TrackingSnapshot,
        metrics: Optional[PerformanceMetrics] = None,
    ) -> np.ndarray:
        image = self.decode_preview(snapshot)
        if self.config.show_cursor:
            self.draw_cursor(image, snapshot)
        if self.config.show_status:
            self.draw_status(image, snapshot)
        if self.config.show_fps and metrics is not None:
            self.draw_fps(image, metrics)
        return image

    def draw_cursor(self, image: np.ndarray, snapshot: TrackingSnapshot) -> np.ndarray:
        # Preview and x are both mirrored, so they line up directly
        if not snapshot.has_point:
            return image
        height, width = image.shape[:2]
        center = (int(snapshot.x * (width - 1)), int(snapshot.y * (height - 1)))
        color = self.config.point_color if snapshot.gesture == "point" else self.config.palm_color
        cv2.circle(image, center, 10, color, 2, cv2.LINE_AA)
        cv2.circle(image, center, 3, color, -1, cv2.LINE_AA)
        return image

    def draw_status(self, image: np.ndarray, snapshot: TrackingSnapshot) -> np.ndarray:
        if snapshot.error:
            text, color = "ERROR: {}".format(snapshot.error), self.config.warning_color
        elif not snapshot.ready:
            text, color = "Starting camera...", self.config.text_color
        elif snapshot.has_point:
            text = "{} ({:.2f}, {:.2f})".format(snapshot.gesture, snapshot.x, snapshot.y)
            color = self.config.text_color
        else:
            text, color = "No hand", self.config.text_color

        cv2.putText(image, text, (10, image.shape[0] - 10), cv2.FONT_HERSHEY_SIMPLEX,
                    self.config.font_scale, color, self.config.font_thickness, cv2.LINE_AA)
        return image

    def draw_fps(self, image: np.ndarray, metrics: PerformanceMetrics) -> np.ndarray:
        text = "FPS: {:.1f}  det: {:.1f}ms".format(metrics.fps, metrics.detection_time_ms)
        cv2.putText(image, text, (10, 20), cv2.FONT_HERSHEY_SIMPLEX,
                    self.config.font_scale, self.config.text_color,
                    self.config.font_thickness, cv2.LINE_AA)
        return image
