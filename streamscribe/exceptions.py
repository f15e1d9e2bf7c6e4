"""Exception hierarchy for streamscribe.

All package-specific exceptions inherit from StreamscribeError.
"""


class StreamscribeError(Exception):
    """Base exception for all streamscribe errors."""

    pass


class ConfigError(StreamscribeError):
    """Configuration loading or validation error."""

    pass


class CaptureError(StreamscribeError):
    """Audio capture device error."""

    pass


class TranscriptionError(StreamscribeError):
    """Transcription engine error."""

    pass
