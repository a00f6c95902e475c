"""Audio state value types.

``SoundState`` mirrors one registered sound; ``AudioState`` is the full
snapshot handed to observers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Any

from soundsync.audio.categories import Category


class PlaybackStatus(Enum):
    """Tri-state playback status of a sound."""

    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"

    def flags(self) -> dict[str, bool]:
        """Return the playing/paused/stopped flags for this status."""
        return {
            "playing": self is PlaybackStatus.PLAYING,
            "paused": self is PlaybackStatus.PAUSED,
            "stopped": self is PlaybackStatus.STOPPED,
        }


@dataclass(frozen=True)
class SoundState:
    """Mirrored state of one sound.

    Attributes:
        playing: Sound is playing.
        paused: Sound is paused.
        stopped: Sound is stopped (initial state).
        volume: Volume from 0.0 to 1.0.
        loop: Whether the sound loops.
        rate: Playback rate (1.0 = normal).
        last_played: Epoch seconds of the last transition into playing.
    """

    playing: bool = False
    paused: bool = False
    stopped: bool = True
    volume: float = 1.0
    loop: bool = False
    rate: float = 1.0
    last_played: float | None = None

    @property
    def status(self) -> PlaybackStatus:
        """Current tri-state status."""
        if self.playing:
            return PlaybackStatus.PLAYING
        if self.paused:
            return PlaybackStatus.PAUSED
        return PlaybackStatus.STOPPED

    def is_consistent(self) -> bool:
        """Check that exactly one status flag is set."""
        return [self.playing, self.paused, self.stopped].count(True) == 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase dictionary used by observers."""
        return {
            "playing": self.playing,
            "paused": self.paused,
            "stopped": self.stopped,
            "volume": self.volume,
            "loop": self.loop,
            "rate": self.rate,
            "lastPlayed": self.last_played,
        }


SOUND_STATE_FIELDS = frozenset(item.name for item in fields(SoundState))

SoundMap = Mapping[str, SoundState]


def _frozen_map(sounds: Mapping[str, SoundState] | None = None) -> SoundMap:
    return MappingProxyType(dict(sounds or {}))


@dataclass(frozen=True)
class SfxState:
    """Sound effect states grouped by subcategory (read-only maps)."""

    core: SoundMap = field(default_factory=_frozen_map)
    interface: SoundMap = field(default_factory=_frozen_map)
    aria: SoundMap = field(default_factory=_frozen_map)


@dataclass(frozen=True)
class AudioState:
    """Full audio state snapshot.

    Snapshots are immutable: every listener of a publish receives the same
    object, so none of them can change what the others see.

    Attributes:
        global_mute: Engine-wide mute flag.
        global_volume: Engine-wide volume from 0.0 to 1.0.
        music: Music sound states by key.
        sfx: Sound effect states by subcategory and key.
    """

    global_mute: bool = False
    global_volume: float = 1.0
    music: SoundMap = field(default_factory=_frozen_map)
    sfx: SfxState = field(default_factory=SfxState)

    @classmethod
    def build(
        cls,
        global_mute: bool,
        global_volume: float,
        sounds: Mapping[Category, Mapping[str, SoundState]],
    ) -> "AudioState":
        """Build a snapshot from per-category maps, copying each map."""
        return cls(
            global_mute=global_mute,
            global_volume=global_volume,
            music=_frozen_map(sounds.get(Category.MUSIC)),
            sfx=SfxState(
                core=_frozen_map(sounds.get(Category.SFX_CORE)),
                interface=_frozen_map(sounds.get(Category.SFX_INTERFACE)),
                aria=_frozen_map(sounds.get(Category.SFX_ARIA)),
            ),
        )

    def sounds(self, category: Category) -> SoundMap | None:
        """Get the state map for a mirrored category.

        Returns:
            The key -> SoundState map, or None for ``multitrack``.
        """
        if category is Category.MUSIC:
            return self.music
        if category.group == "sfx":
            return getattr(self.sfx, category.subcategory or "")
        return None

    def get(self, category: Category, key: str) -> SoundState | None:
        """Get the state of one sound, or None if it is not mirrored."""
        sounds = self.sounds(category)
        if sounds is None:
            return None
        return sounds.get(key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "globalMute": self.global_mute,
            "globalVolume": self.global_volume,
            "music": {key: state.to_dict() for key, state in self.music.items()},
            "sfx": {
                "core": {key: state.to_dict() for key, state in self.sfx.core.items()},
                "interface": {key: state.to_dict() for key, state in self.sfx.interface.items()},
                "aria": {key: state.to_dict() for key, state in self.sfx.aria.items()},
            },
        }
