"""
Error taxonomy for the tracking pipeline.

Only CameraUnavailable and ModelUnavailable end a session; they reach
consumers through the snapshot ``error`` field. DetectionFailure and
EncodingFailure are recovered where they happen.
"""


class TrackingError(Exception):
    """Base class for tracking pipeline errors."""


class CameraUnavailable(TrackingError):
    """No camera, permission denied, device busy, or the stream died."""


class ModelUnavailable(TrackingError):
    """The hand landmark model could not be loaded."""


class DetectionFailure(TrackingError):
    """The detector raised or returned malformed output for one frame."""


class EncodingFailure(TrackingError):
    """A preview snapshot could not be encoded."""
