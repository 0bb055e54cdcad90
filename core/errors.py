"""
Error taxonomy for the tracker.
"""


class TrackerError(Exception):
    """Base class for tracker errors."""


class ConfigurationError(TrackerError):
    """No credentials available for a service. Fatal to session start."""


class CameraUnavailableError(TrackerError):
    """The capture device could not be acquired. Fatal to session start."""


class FrameNotReadyError(TrackerError):
    """The frame source has no usable frame yet."""


class SummaryGenerationError(TrackerError):
    """A text-generation attempt produced no usable text."""


class SessionStateError(TrackerError):
    """Operation not valid for the current session status."""
