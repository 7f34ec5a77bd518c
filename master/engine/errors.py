from __future__ import annotations


class MasteringError(Exception):
    """Base error for the mastering engine."""


class NoBufferLoaded(MasteringError):
    """Raised when a render or playback start is requested with no buffer loaded."""


class InvalidBufferError(MasteringError, ValueError):
    """Raised when an audio buffer has an unusable shape or sample rate."""


class WavFormatError(MasteringError, ValueError):
    """Raised for unknown export formats or WAV data that cannot be decoded."""


class InvalidAnalysisError(MasteringError, ValueError):
    """Raised when analysis metrics lack a required field."""
