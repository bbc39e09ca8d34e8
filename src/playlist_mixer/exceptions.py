"""Custom exceptions for the Playlist Mixer module."""

from typing import List, Optional


class MixerError(Exception):
    """Base class for all playlist mixer errors."""

    pass


class ConfigurationError(MixerError, ValueError):
    """Raised when mix options or ratio configuration are invalid.

    Carries the full list of problems so callers can report every issue at
    once instead of failing on the first one.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors: List[str] = list(errors) if errors else [message]


class DataQualityIssue(MixerError):
    """Raised when a source track payload is missing required fields."""

    pass
