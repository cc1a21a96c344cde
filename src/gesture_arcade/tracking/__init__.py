"""Signal conditioning: smoothing, track-loss hysteresis, preview encoding."""
from .one_euro import OneEuroFilter, FilterConfig, FilterState
from .track_loss import TrackLossArbiter
from .preview import PreviewEncoder, PreviewConfig

__all__ = [
    "OneEuroFilter", "FilterConfig", "FilterState",
    "TrackLossArbiter", "PreviewEncoder", "PreviewConfig",
]
