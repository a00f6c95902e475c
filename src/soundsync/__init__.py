"""SoundSync - sound manager with an event-driven mirrored state."""

from soundsync.version import __version__

__all__ = ["__version__"]
