"""Global transport controls spanning every sound and speech.

Mute, volume and stop go through the engine-wide surface, so they also reach
sounds the store does not mirror (multitrack). Pause and play walk the
registry. Stop and pause include speech.
"""

from collections.abc import Callable

from soundsync.audio.engine.base import IPlaybackEngine, clamp
from soundsync.audio.registry import SoundRegistry
from soundsync.audio.speech.speech_facade import SpeechFacade
from soundsync.audio.state_store import StateStore
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class GlobalControls:
    """Aggregate operations over every registered sound and speech."""

    def __init__(
        self,
        engine: Callable[[], IPlaybackEngine | None],
        registry: SoundRegistry,
        store: StateStore,
        speech: SpeechFacade,
    ) -> None:
        """Initialize the controls.

        Args:
            engine: Returns the playback engine once it is initialized, else None.
            registry: Registry of handles for pause/play.
            store: Store recording global mute and volume.
            speech: Speech facade included in stop/pause.
        """
        self._engine = engine
        self._registry = registry
        self._store = store
        self._speech = speech

    def _ready_engine(self, operation: str) -> IPlaybackEngine | None:
        engine = self._engine()
        if engine is None:
            logger.warning("Playback engine not initialized, ignoring %s", operation)
        return engine

    def mute_all(self) -> None:
        """Mute every sound."""
        engine = self._ready_engine("mute_all")
        if engine is None:
            return
        engine.mute(True)
        self._store.set_global(mute=True)

    def unmute_all(self) -> None:
        """Unmute every sound."""
        engine = self._ready_engine("unmute_all")
        if engine is None:
            return
        engine.mute(False)
        self._store.set_global(mute=False)

    def volume_all(self, volume: float) -> None:
        """Set the engine-wide volume (clamped to 0.0-1.0)."""
        engine = self._ready_engine("volume_all")
        if engine is None:
            return
        volume = clamp(float(volume), 0.0, 1.0)
        engine.set_volume(volume)
        self._store.set_global(volume=volume)

    def stop_all(self) -> None:
        """Stop every sound and any speech."""
        engine = self._ready_engine("stop_all")
        if engine is not None:
            engine.stop_all()
        self._speech.stop()

    def pause_all(self) -> None:
        """Pause every registered sound and any speech."""
        if self._ready_engine("pause_all") is not None:
            for handle in self._registry.handles():
                handle.pause()
        self._speech.pause()

    def play_all(self) -> None:
        """Play every registered sound."""
        if self._ready_engine("play_all") is None:
            return
        for handle in self._registry.handles():
            handle.play()
