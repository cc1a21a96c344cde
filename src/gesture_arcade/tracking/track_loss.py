"""
Track-loss hysteresis.

A single missed detection is routine even with a hand in view. The last
smoothed point stays visible until detections have been missing for longer
than the hold window; only then is the point cleared and the filters reset.
"""

import logging
from typing import Optional

from ..core.types import ControlPoint
from ..detection.point_extractor import clamp01
from .one_euro import OneEuroFilter

logger = logging.getLogger(__name__)


class TrackLossArbiter:
    """Feeds detections through the axis filters and decides when tracking is lost."""

    def __init__(
        self,
        x_filter: OneEuroFilter,
        y_filter: OneEuroFilter,
        hold_ms: float = 120.0,
    ):
        self.x_filter = x_filter
        self.y_filter = y_filter
        self.hold_ms = hold_ms
        self._last_detection: Optional[float] = None
        self._point: Optional[ControlPoint] = None
        self._lost = True

    def update(self, point: Optional[ControlPoint], timestamp: float) -> Optional[ControlPoint]:
        """
        Args:
            point: This frame's extracted point, or None if nothing was seen
            timestamp: Frame time in milliseconds

        Returns:
            The externally visible smoothed point, or None when lost
        """
        if point is not None:
            self._last_detection = timestamp
            self._lost = False
            self._point = ControlPoint(
                x=clamp01(self.x_filter.filter(point.x, timestamp)),
                y=clamp01(self.y_filter.filter(point.y, timestamp)),
                gesture=point.gesture,
            )
            return self._point

        if self._last_detection is None or timestamp - self._last_detection > self.hold_ms:
            if not self._lost:
                logger.debug("Tracking lost after %.0fms without detection",
                             timestamp - self._last_detection)
            self._lost = True
            self._point = None
            self.x_filter.reset()
            self.y_filter.reset()

        return self._point

    def reset(self) -> None:
        self._last_detection = None
        self._point = None
        self._lost = True
        self.x_filter.reset()
        self.y_filter.reset()

    @property
    def point(self) -> Optional[ControlPoint]:
        return self._point

    @property
    def is_lost(self) -> bool:
        return self._lost

    @property
    def last_detection(self) -> Optional[float]:
        return self._last_detection
