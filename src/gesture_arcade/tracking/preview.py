"""
Throttled camera preview encoding.

Produces a mirrored, downscaled JPEG thumbnail at most once per throttle
interval, independent of how often frames are captured or detected.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import cv2

from ..capture.camera import Frame
from ..core.types import PreviewFrame
from ..errors import EncodingFailure

logger = logging.getLogger(__name__)


@dataclass
class PreviewConfig:
    """Preview encoding settings."""
    enabled: bool = True
    throttle_ms: float = 30.0
    process_width: int = 480
    jpeg_quality: int = 50

    @classmethod
    def from_dict(cls, config: dict) -> "PreviewConfig":
        return cls(
            enabled=config.get("enabled", True),
            throttle_ms=config.get("throttle_ms", 30.0),
            process_width=config.get("process_width", 480),
            jpeg_quality=config.get("jpeg_quality", 50),
        )


class PreviewEncoder:
    """Rate-limited mirrored thumbnail encoder."""

    def __init__(self, config: Optional[PreviewConfig] = None):
        self.config = config or PreviewConfig()
        self._latest: Optional[PreviewFrame] = None
        self._last_encode: Optional[float] = None
        self._failures = 0

    def offer(self, frame: Frame) -> Optional[PreviewFrame]:
        """
        Encode ``frame`` if the throttle interval has passed.

        Returns:
            The current preview (new or retained), or None if none yet
        """
        if not self.config.enabled:
            return self._latest
        if self._last_encode is not None and frame.timestamp - self._last_encode <= self.config.throttle_ms:
            return self._latest

        try:
            self._latest = self.encode(frame)
            self._last_encode = frame.timestamp
        except EncodingFailure as e:
            self._failures += 1
            if self._failures == 1 or self._failures % 100 == 0:
                logger.debug("Preview encoding failed (%d so far): %s", self._failures, e)
        return self._latest

    def encode(self, frame: Frame) -> PreviewFrame:
        """
        Downscale, mirror and JPEG-encode one frame.

        Raises:
            EncodingFailure: if OpenCV cannot encode the image
        """
        try:
            image = frame.image
            height, width = image.shape[:2]
            if width > self.config.process_width:
                scale = self.config.process_width / width
                size = (self.config.process_width, max(1, int(height * scale)))
                image = cv2.resize(image, size, interpolation=cv2.INTER_AREA)
            image = cv2.flip(image, 1)
            ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, self.config.jpeg_quality])
        except (cv2.error, AttributeError, ValueError) as e:
            raise EncodingFailure(str(e)) from e
        if not ok:
            raise EncodingFailure("cv2.imencode returned no data")

        out_height, out_width = image.shape[:2]
        return PreviewFrame(
            data=buffer.tobytes(),
            width=out_width,
            height=out_height,
            timestamp=frame.timestamp,
        )

    def reset(self) -> None:
        self._latest = None
        self._last_encode = None

    @property
    def latest(self) -> Optional[PreviewFrame]:
        return self._latest

    @property
    def failure_count(self) -> int:
        return self._failures
