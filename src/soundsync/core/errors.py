"""Error taxonomy for SoundSync.

Exceptions are raised inside engines only. The facades catch them and map
every failure to an ``Outcome`` that is logged instead of raised.
"""

from enum import Enum


class SoundSyncError(Exception):
    """Base class for SoundSync errors."""


class EngineUnavailableError(SoundSyncError):
    """Raised when an engine backend cannot be created or is not initialized."""


class PlaybackEngineError(SoundSyncError):
    """Raised when a playback engine operation fails."""


class Outcome(Enum):
    """Result of a facade operation."""

    OK = "ok"
    NOT_FOUND = "not_found"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    LOAD_ERROR = "load_error"
    UNSUPPORTED = "unsupported"
    SUPPRESSED = "suppressed"  # debounced or aria disabled
