"""Mirrored audio state store.

The store owns the state of a sound manager. It is mutated only through
``init``, ``apply``/``transition`` and ``set_global``, and every mutation
publishes one immutable ``AudioState`` on the event bus.

``SoundState`` entries are frozen and replaced on update, so a snapshot can
share them with the store without copying.

Typical usage example:
    store = StateStore(EventBus())
    store.init(Category.SFX_CORE, "click", handle)
    store.transition(Category.SFX_CORE, "click", PlaybackStatus.PLAYING)
    snapshot = store.snapshot()
"""

import dataclasses
import time
from collections.abc import Callable
from typing import Any

from soundsync.audio.categories import Category
from soundsync.audio.engine.base import SoundHandle
from soundsync.audio.state import SOUND_STATE_FIELDS, AudioState, PlaybackStatus, SoundState
from soundsync.core.event_bus import EventBus
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)

MIRRORED_CATEGORIES = (
    Category.MUSIC,
    Category.SFX_CORE,
    Category.SFX_INTERFACE,
    Category.SFX_ARIA,
)


class StateStore:
    """Owner of the mirrored audio state.

    Examples:
        >>> store = StateStore(EventBus())
        >>> store.init(Category.MUSIC, "intro", handle).stopped
        True
    """

    def __init__(
        self,
        bus: EventBus[AudioState],
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an empty store.

        Args:
            bus: Bus that receives a snapshot after every mutation.
            clock: Wall clock used for ``last_played`` (epoch seconds).
        """
        self._bus = bus
        self._clock = clock
        self._global_mute = False
        self._global_volume = 1.0
        self._sounds: dict[Category, dict[str, SoundState]] = {
            category: {} for category in MIRRORED_CATEGORIES
        }

    def init(self, category: Category, key: str, handle: SoundHandle) -> SoundState | None:
        """Seed a stopped entry for a newly registered sound.

        Volume, loop and rate are copied from the handle. Multitrack sounds
        are not mirrored.

        Returns:
            The new state, or None for multitrack.
        """
        sounds = self._sounds.get(category)
        if sounds is None:
            logger.debug("Not mirroring state for %s/%s", category.value, key)
            self._publish()
            return None

        state = SoundState(
            volume=handle.volume(),
            loop=handle.loop(),
            rate=handle.rate(),
        )
        sounds[key] = state
        self._publish()
        return state

    def apply(self, category: Category, key: str, partial: dict[str, Any]) -> bool:
        """Merge field updates into an existing entry and publish.

        Unknown keys and updates that would break the playing/paused/stopped
        exclusivity are rejected and logged.

        Returns:
            True if the update was applied.
        """
        sounds = self._sounds.get(category)
        if sounds is None:
            return False

        current = sounds.get(key)
        if current is None:
            logger.debug("Ignoring state update for unregistered sound %s/%s", category.value, key)
            return False

        unknown = set(partial) - SOUND_STATE_FIELDS
        if unknown:
            logger.warning("Ignoring unknown state fields %s for %s/%s", sorted(unknown), category.value, key)
            return False

        merged = dataclasses.replace(current, **partial)
        if not merged.is_consistent():
            logger.warning(
                "Rejected inconsistent state update for %s/%s: %s", category.value, key, partial
            )
            return False

        if (
            current.last_played is not None
            and merged.last_played is not None
            and merged.last_played < current.last_played
        ):
            merged = dataclasses.replace(merged, last_played=current.last_played)

        sounds[key] = merged
        self._publish()
        return True

    def transition(self, category: Category, key: str, status: PlaybackStatus) -> bool:
        """Move a sound to a playback status.

        Entering ``PLAYING`` stamps ``last_played``.

        Returns:
            True if the transition was applied.
        """
        partial: dict[str, Any] = dict(status.flags())
        if status is PlaybackStatus.PLAYING:
            partial["last_played"] = self._clock()
        return self.apply(category, key, partial)

    def set_global(self, mute: bool | None = None, volume: float | None = None) -> None:
        """Update the global mute flag and/or volume and publish."""
        if mute is not None:
            self._global_mute = mute
        if volume is not None:
            self._global_volume = volume
        self._publish()

    def snapshot(self) -> AudioState:
        """Return an immutable view of the current state."""
        return AudioState.build(self._global_mute, self._global_volume, self._sounds)

    def get(self, category: Category, key: str) -> SoundState | None:
        """Return one sound's state, or None."""
        sounds = self._sounds.get(category)
        return sounds.get(key) if sounds is not None else None

    def _publish(self) -> None:
        self._bus.publish(self.snapshot())
