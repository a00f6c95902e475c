"""Playback engines.

``create_playback_engine`` builds an engine by backend name. Backend
modules are imported lazily so a missing native library only matters for
the backend that needs it.
"""

from typing import Any

from soundsync.audio.engine.base import IPlaybackEngine, SoundHandle, SoundSource
from soundsync.audio.engine.events import EngineEvent, EngineEventChannel
from soundsync.audio.engine.headless_engine import HeadlessPlaybackEngine

PLAYBACK_BACKENDS = ("fmod", "pygame", "headless")


def create_playback_engine(backend: str, **kwargs: Any) -> IPlaybackEngine:
    """Create a playback engine.

    Args:
        backend: One of ``fmod``, ``pygame`` or ``headless``.
        **kwargs: Passed to the engine constructor.

    Raises:
        ValueError: If the backend name is unknown.
        EngineUnavailableError: If the backend library is missing.
    """
    if backend == "fmod":
        from soundsync.audio.engine.fmod_engine import FMODPlaybackEngine

        return FMODPlaybackEngine(**kwargs)
    if backend == "pygame":
        from soundsync.audio.engine.pygame_engine import PygamePlaybackEngine

        return PygamePlaybackEngine(**kwargs)
    if backend == "headless":
        return HeadlessPlaybackEngine(**kwargs)
    raise ValueError(f"Unknown playback backend: {backend}")


__all__ = [
    "PLAYBACK_BACKENDS",
    "EngineEvent",
    "EngineEventChannel",
    "HeadlessPlaybackEngine",
    "IPlaybackEngine",
    "SoundHandle",
    "SoundSource",
    "create_playback_engine",
]
