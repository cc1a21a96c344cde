"""
One Euro Filter for control point smoothing.

Reference: Casiez et al. "1€ Filter: A Simple Speed-based Low-pass
Filter for Noisy Input in Interactive Systems" (CHI 2012)
"""

import math
from dataclasses import dataclass
from typing import Optional

# Floor on the sample interval; keeps the derivative finite for
# near-simultaneous timestamps.
MIN_DELTA_S = 1.0 / 240.0


@dataclass
class FilterConfig:
    """One Euro parameters."""
    min_cutoff: float = 1.2
    beta: float = 0.025
    derivative_cutoff: float = 1.0

    @classmethod
    def from_dict(cls, config: dict) -> "FilterConfig":
        return cls(
            min_cutoff=config.get("min_cutoff", 1.2),
            beta=config.get("beta", 0.025),
            derivative_cutoff=config.get("derivative_cutoff", 1.0),
        )


@dataclass(frozen=True)
class FilterState:
    value: Optional[float] = None
    derivative: Optional[float] = None
    last_timestamp: Optional[float] = None


def smoothing_factor(dt: float, cutoff: float) -> float:
    """Exponential smoothing weight for a low-pass at ``cutoff`` Hz."""
    r = 2.0 * math.pi * cutoff * dt
    return r / (r + 1.0)


class OneEuroFilter:
    """
    Adaptive low-pass filter for one scalar channel.

    Slow movement lowers the cutoff (heavy smoothing, less jitter); fast
    movement raises it (light smoothing, less lag).
    """

    def __init__(
        self,
        min_cutoff: float = 1.2,
        beta: float = 0.025,
        derivative_cutoff: float = 1.0,
    ):
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.derivative_cutoff = derivative_cutoff

        self._value: Optional[float] = None
        self._derivative: Optional[float] = None
        self._last_timestamp: Optional[float] = None

    @classmethod
    def from_config(cls, config: FilterConfig) -> "OneEuroFilter":
        return cls(config.min_cutoff, config.beta, config.derivative_cutoff)

    def filter(self, value: float, timestamp: float) -> float:
        """
        Smooth one sample.

        Args:
            value: Raw input value
            timestamp: Sample time in milliseconds

        Returns:
            Filtered value (the input itself for the first sample)
        """
        if self._value is None or self._last_timestamp is None:
            self._value = value
            self._derivative = 0.0
            self._last_timestamp = timestamp
            return value

        dt = max((timestamp - self._last_timestamp) / 1000.0, MIN_DELTA_S)

        raw_derivative = (value - self._value) / dt
        alpha_d = smoothing_factor(dt, self.derivative_cutoff)
        if self._derivative is None:
            self._derivative = raw_derivative
        else:
            self._derivative = alpha_d * raw_derivative + (1.0 - alpha_d) * self._derivative

        cutoff = self.min_cutoff + self.beta * abs(self._derivative)
        alpha = smoothing_factor(dt, cutoff)
        self._value = alpha * value + (1.0 - alpha) * self._value
        self._last_timestamp = timestamp
        return self._value

    def reset(self) -> None:
        """Forget all history; the next sample passes through unchanged."""
        self._value = None
        self._derivative = None
        self._last_timestamp = None

    @property
    def state(self) -> FilterState:
        return FilterState(self._value, self._derivative, self._last_timestamp)

    @property
    def is_empty(self) -> bool:
        return self._value is None
