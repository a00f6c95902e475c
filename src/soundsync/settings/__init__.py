"""Configuration for SoundSync.

This package loads the YAML configuration that selects engine backends,
playback policy and the startup sound manifest.
"""

from soundsync.settings.audio_config import (
    AudioConfig,
    SoundEntry,
    SpeechConfig,
    load_audio_config,
)

__all__ = [
    "AudioConfig",
    "SoundEntry",
    "SpeechConfig",
    "load_audio_config",
]
