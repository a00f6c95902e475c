"""Per-category playback API.

A ``CategoryFacade`` forwards transport calls for one category to the
registered handles. It never sets playing/paused/stopped itself: those
transitions arrive later as engine events. Volume, rate and loop setters are
mirrored into the state store right away.

Failures never raise. A missing key is logged at debug level, an engine that
is not ready at warning level, and the call returns None (or False).

Typical usage example:
    manager.sfx.core.play("click")
    manager.music.volume("intro", 0.3)
    manager.music.fade("intro", 0.3, 0.0, 2000)
"""

import time
from collections.abc import Callable
from typing import Any

from soundsync.audio.categories import Category
from soundsync.audio.engine.base import SoundHandle
from soundsync.audio.registry import SoundRegistry
from soundsync.audio.state_store import StateStore
from soundsync.core.errors import Outcome
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class PlaybackPolicy:
    """Rules that can suppress a play request.

    Attributes:
        aria_enabled: When False, accessibility cues (``sfx/aria``) are muted.
        debounce_ms: Minimum interval between two plays of the same key.
    """

    def __init__(
        self,
        aria_enabled: bool = True,
        debounce_ms: dict[str, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the policy.

        Args:
            aria_enabled: Whether accessibility cues may play.
            debounce_ms: Per-key debounce windows in milliseconds.
            clock: Monotonic time source in seconds.
        """
        self.aria_enabled = aria_enabled
        self.debounce_ms = dict(debounce_ms or {})
        self._clock = clock
        self._last_accepted: dict[tuple[Category, str], float] = {}

    def allow_play(self, category: Category, key: str) -> bool:
        """Check a play request and remember it if accepted."""
        if category is Category.SFX_ARIA and not self.aria_enabled:
            logger.debug("ARIA sounds disabled, skipping %s", key)
            return False

        window = self.debounce_ms.get(key)
        now = self._clock()
        if window:
            last = self._last_accepted.get((category, key))
            if last is not None and (now - last) * 1000.0 < window:
                logger.debug("Debounced play of %s/%s", category.value, key)
                return False

        self._last_accepted[(category, key)] = now
        return True


class CategoryFacade:
    """Transport controls for the sounds of one category."""

    def __init__(
        self,
        category: Category,
        registry: SoundRegistry,
        store: StateStore,
        is_ready: Callable[[], bool],
        policy: PlaybackPolicy,
    ) -> None:
        """Initialize the facade.

        Args:
            category: Category served by this facade.
            registry: Registry holding the handles.
            store: Store mirroring sound state.
            is_ready: Returns True once the playback engine is initialized.
            policy: Rules that may suppress play requests.
        """
        self.category = category
        self._registry = registry
        self._store = store
        self._is_ready = is_ready
        self._policy = policy
        self.last_outcome = Outcome.OK

    def _resolve(self, key: str, operation: str) -> tuple[Outcome, SoundHandle | None]:
        if not self._is_ready():
            logger.warning(
                "Playback engine not initialized, ignoring %s(%s/%s)",
                operation,
                self.category.value,
                key,
            )
            outcome, handle = Outcome.ENGINE_UNAVAILABLE, None
        else:
            handle = self._registry.resolve(self.category, None, key)
            if handle is None:
                logger.debug("No sound registered as %s/%s for %s", self.category.value, key, operation)
                outcome = Outcome.NOT_FOUND
            else:
                outcome = Outcome.OK
        self.last_outcome = outcome
        return outcome, handle

    def play(self, key: str, *engine_args: Any) -> int | None:
        """Ask the engine to play a sound.

        The mirrored state changes only when the engine reports ``play``.

        Args:
            key: Registered key.
            *engine_args: Passed to the handle (e.g. a sprite name).

        Returns:
            Sound id of the started voice, or None.
        """
        logger.debug("%s.play %s %s", self.category.value, key, engine_args)
        _outcome, handle = self._resolve(key, "play")
        if handle is None:
            return None
        if not self._policy.allow_play(self.category, key):
            self.last_outcome = Outcome.SUPPRESSED
            return None
        if handle.load_error:
            self.last_outcome = Outcome.LOAD_ERROR
        return handle.play(*engine_args)

    def play_sprite(self, key: str, sprite: str) -> int | None:
        """Play a named sub-clip of a sound."""
        return self.play(key, sprite)

    def pause(self, key: str, sound_id: int | None = None) -> None:
        """Ask the engine to pause a sound (or one voice)."""
        logger.debug("%s.pause %s %s", self.category.value, key, sound_id)
        _outcome, handle = self._resolve(key, "pause")
        if handle is not None:
            handle.pause(sound_id)

    def stop(self, key: str) -> None:
        """Ask the engine to stop every voice of a sound."""
        logger.debug("%s.stop %s", self.category.value, key)
        _outcome, handle = self._resolve(key, "stop")
        if handle is not None:
            handle.stop()

    def volume(
        self, key: str, value: float | None = None, sound_id: int | None = None
    ) -> float | None:
        """Get or set a sound's volume.

        Only whole-sound changes are mirrored; setting one voice leaves the
        mirrored state alone.

        Returns:
            The current (or new) volume, or None if the sound is unavailable.
        """
        _outcome, handle = self._resolve(key, "volume")
        if handle is None:
            return None
        if value is None:
            return handle.volume(None, sound_id)
        result = handle.volume(value, sound_id)
        if sound_id is None:
            self._store.apply(self.category, key, {"volume": result})
        return result

    def rate(
        self, key: str, value: float | None = None, sound_id: int | None = None
    ) -> float | None:
        """Get or set a sound's playback rate."""
        _outcome, handle = self._resolve(key, "rate")
        if handle is None:
            return None
        if value is None:
            return handle.rate(None, sound_id)
        result = handle.rate(value, sound_id)
        if sound_id is None:
            self._store.apply(self.category, key, {"rate": result})
        return result

    def loop(
        self, key: str, value: bool | None = None, sound_id: int | None = None
    ) -> bool | None:
        """Get or set whether a sound loops."""
        _outcome, handle = self._resolve(key, "loop")
        if handle is None:
            return None
        if value is None:
            return handle.loop(None, sound_id)
        result = handle.loop(value, sound_id)
        if sound_id is None:
            self._store.apply(self.category, key, {"loop": result})
        return result

    def fade(
        self,
        key: str,
        start: float,
        end: float,
        duration_ms: float,
        sound_id: int | None = None,
    ) -> None:
        """Fade a sound's volume; the store follows when the fade completes."""
        _outcome, handle = self._resolve(key, "fade")
        if handle is None:
            return
        handle.fade(start, end, duration_ms, sound_id)
        if sound_id is None and (not handle.voices() or duration_ms <= 0):
            self._store.apply(self.category, key, {"volume": handle.volume()})

    def playing(self, key: str, sound_id: int | None = None) -> bool:
        """Check whether the engine is playing a sound (or one voice)."""
        _outcome, handle = self._resolve(key, "playing")
        return bool(handle is not None and handle.playing(sound_id))

    def keys(self) -> list[str]:
        """Registered keys of this category."""
        return self._registry.keys(self.category)
