"""
Control point extraction from a hand landmark set.

The index fingertip is the precise pointer. When it is missing the palm
centroid keeps the signal alive at lower precision. Only the index mapping
below is specific to the MediaPipe hand model.
"""

import math
import logging
from typing import Optional, Sequence, Tuple

from ..core.types import ControlPoint, GestureTag
from .hand_detector import HandLandmarks, LandmarkIndex

logger = logging.getLogger(__name__)

FINGERTIP_INDEX = LandmarkIndex.INDEX_TIP

# wrist + finger bases
PALM_INDICES = (
    LandmarkIndex.WRIST,
    LandmarkIndex.THUMB_CMC,
    LandmarkIndex.INDEX_MCP,
    LandmarkIndex.MIDDLE_MCP,
    LandmarkIndex.RING_MCP,
    LandmarkIndex.PINKY_MCP,
)


def clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def _coords(landmark) -> Optional[Tuple[float, float]]:
    """Return finite (x, y) for a landmark, or None if it is unusable."""
    if landmark is None:
        return None
    x = getattr(landmark, "x", None)
    y = getattr(landmark, "y", None)
    if isinstance(x, bool) or isinstance(y, bool):
        return None
    if not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return float(x), float(y)


class PointExtractor:
    """Converts a landmark set into a single normalized control point."""

    def __init__(
        self,
        fingertip_index: int = FINGERTIP_INDEX,
        palm_indices: Sequence[int] = PALM_INDICES,
    ):
        self.fingertip_index = fingertip_index
        self.palm_indices = tuple(palm_indices)

    def extract(self, hand: Optional[HandLandmarks]) -> Optional[ControlPoint]:
        """
        Args:
            hand: Detector output for one hand, or None

        Returns:
            ControlPoint tagged ``point`` or ``palm``, or None when nothing
            usable was seen
        """
        if hand is None:
            return None

        tip = _coords(hand.get(self.fingertip_index))
        if tip is not None:
            return self._mirrored(tip[0], tip[1], GestureTag.POINT)

        palm = [_coords(hand.get(index)) for index in self.palm_indices]
        if palm and all(point is not None for point in palm):
            center_x = sum(point[0] for point in palm) / len(palm)
            center_y = sum(point[1] for point in palm) / len(palm)
            return self._mirrored(center_x, center_y, GestureTag.PALM)

        return None

    @staticmethod
    def _mirrored(raw_x: float, raw_y: float, gesture: GestureTag) -> ControlPoint:
        return ControlPoint(x=clamp01(1.0 - raw_x), y=clamp01(raw_y), gesture=gesture)
