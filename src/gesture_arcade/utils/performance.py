"""
Performance Monitoring Module
==============================

Rolling per-stage timing and frame counters for a tracking session.
"""

import time
import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceMetrics:
    """Container for performance metrics snapshot."""
    fps: float = 0.0
    detection_time_ms: float = 0.0
    preview_time_ms: float = 0.0
    total_frames: int = 0
    processed_frames: int = 0
    dropped_frames: int = 0
    detection_failures: int = 0


class PerformanceMonitor:
    """
    Real-time performance monitoring for the tracking pipeline.

    Example:
        >>> monitor = PerformanceMonitor()
        >>> with monitor.measure("detection"):
        ...     hand = detector.detect(frame.rgb, frame.timestamp)
        >>> monitor.frame_processed(frame.timestamp)
    """

    def __init__(self, window_size: int = 30):
        """
        Args:
            window_size: Number of samples for rolling averages
        """
        self.window_size = window_size
        self._lock = threading.Lock()
        self._stage_times: Dict[str, deque] = {}
        self._frame_intervals: deque = deque(maxlen=window_size)
        self._last_frame_timestamp: Optional[float] = None
        self._total_frames = 0
        self._processed_frames = 0
        self._dropped_frames = 0
        self._detection_failures = 0

    @contextmanager
    def measure(self, stage: str):
        """
        Context manager to measure a processing stage.

        Args:
            stage: Name of the stage (e.g., "detection", "preview")
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                if stage not in self._stage_times:
                    self._stage_times[stage] = deque(maxlen=self.window_size)
                self._stage_times[stage].append(elapsed)

    def frame_received(self) -> None:
        with self._lock:
            self._total_frames += 1

    def frame_processed(self, timestamp_ms: float) -> None:
        """Count a frame that went through detection; timestamps drive FPS."""
        with self._lock:
            self._processed_frames += 1
            if self._last_frame_timestamp is not None:
                self._frame_intervals.append(timestamp_ms - self._last_frame_timestamp)
            self._last_frame_timestamp = timestamp_ms

    def record_drop(self) -> None:
        with self._lock:
            self._dropped_frames += 1

    def record_detection_failure(self) -> int:
        """Count a detection failure and return the running total."""
        with self._lock:
            self._detection_failures += 1
            return self._detection_failures

    @property
    def fps(self) -> float:
        """Detection rate from the rolling average of frame intervals."""
        with self._lock:
            if not self._frame_intervals:
                return 0.0
            avg_interval = sum(self._frame_intervals) / len(self._frame_intervals)
            return 1000.0 / avg_interval if avg_interval > 0 else 0.0

    def stage_time_ms(self, stage: str) -> float:
        """Get average time for a specific stage in milliseconds."""
        with self._lock:
            times = self._stage_times.get(stage)
            if not times:
                return 0.0
            return (sum(times) / len(times)) * 1000

    def get_metrics(self) -> PerformanceMetrics:
        """Get current performance metrics snapshot."""
        fps = self.fps
        detection_ms = self.stage_time_ms("detection")
        preview_ms = self.stage_time_ms("preview")
        with self._lock:
            return PerformanceMetrics(
                fps=fps,
                detection_time_ms=detection_ms,
                preview_time_ms=preview_ms,
                total_frames=self._total_frames,
                processed_frames=self._processed_frames,
                dropped_frames=self._dropped_frames,
                detection_failures=self._detection_failures,
            )

    def get_report(self) -> str:
        """Get formatted performance report string."""
        metrics = self.get_metrics()
        return (
            f"Tracking Performance\n"
            f"{'=' * 40}\n"
            f"Detection FPS: {metrics.fps:.1f}\n"
            f"  Detection: {metrics.detection_time_ms:.2f}ms\n"
            f"  Preview: {metrics.preview_time_ms:.2f}ms\n"
            f"\nFrame Stats:\n"
            f"  Captured: {metrics.total_frames}\n"
            f"  Processed: {metrics.processed_frames}\n"
            f"  Dropped: {metrics.dropped_frames} "
            f"({100 * metrics.dropped_frames / max(1, metrics.total_frames):.1f}%)\n"
            f"  Detection failures: {metrics.detection_failures}\n"
        )
