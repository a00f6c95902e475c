"""Playback engine interface.

A playback engine loads sound sources into ``SoundHandle`` objects. A handle
can play several voices (overlapping instances) of its sound; each voice has
a numeric sound id. Handles report what actually happened through lifecycle
events (``play``, ``pause``, ``stop``, ``end``, ``loaderror``, ``fade``),
which is what drives the mirrored audio state.

Backends only implement the voice-level hooks (start, pause, resume, stop,
volume, rate, loop, finished). Voice bookkeeping, sprites, fades and event
emission are shared here.

Typical usage example:
    engine = create_playback_engine("fmod")
    engine.initialize({"max_channels": 32})
    handle = engine.load(SoundSource(src=["sfx/click.wav"]))
    handle.on("play", lambda sound_id, error=None: print("playing", sound_id))
    handle.play()
"""

import time
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from soundsync.core.errors import PlaybackEngineError
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)

HANDLE_EVENTS = ("play", "pause", "stop", "end", "loaderror", "fade")

HandleCallback = Callable[..., None]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value to [low, high]."""
    return max(low, min(high, value))


@dataclass
class SoundSource:
    """Descriptor of a sound to load.

    Attributes:
        src: Candidate file paths; the first one the engine can load wins.
        volume: Initial volume (0.0 to 1.0).
        loop: Whether voices loop by default.
        rate: Initial playback rate (1.0 = normal).
        sprite: Named sub-clips as ``(offset_ms, duration_ms)``.
        preload: Load into memory (True) or stream (False).
    """

    src: list[str] = field(default_factory=list)
    volume: float = 1.0
    loop: bool = False
    rate: float = 1.0
    sprite: dict[str, tuple[float, float]] = field(default_factory=dict)
    preload: bool = True

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "SoundSource":
        """Build a source from a mapping such as a YAML manifest entry.

        ``src`` may be a single path or a list of paths. Sprite entries are
        ``[offset_ms, duration_ms]`` pairs.

        Raises:
            ValueError: If the options are malformed.
        """
        src = options.get("src", [])
        if isinstance(src, str):
            src = [src]
        if not isinstance(src, (list, tuple)):
            raise ValueError(f"Invalid src: {src!r}")

        sprite: dict[str, tuple[float, float]] = {}
        for name, clip in (options.get("sprite") or {}).items():
            if not isinstance(clip, (list, tuple)) or len(clip) < 2:
                raise ValueError(f"Invalid sprite {name!r}: {clip!r}")
            sprite[str(name)] = (float(clip[0]), float(clip[1]))

        return cls(
            src=[str(path) for path in src],
            volume=clamp(float(options.get("volume", 1.0)), 0.0, 1.0),
            loop=bool(options.get("loop", False)),
            rate=float(options.get("rate", 1.0)),
            sprite=sprite,
            preload=bool(options.get("preload", True)),
        )


@dataclass
class _Fade:
    start: float
    end: float
    duration: float
    started_at: float


@dataclass
class Voice:
    """One playing instance of a handle's sound.

    Attributes:
        sound_id: Identifier passed to event listeners.
        sprite: Sprite name, or None for the whole sound.
        channel: Backend playback object.
        paused: Whether the voice is paused.
        volume: Voice volume.
        rate: Voice playback rate.
        loop: Whether the voice loops.
    """

    sound_id: int
    sprite: str | None
    channel: Any = None
    paused: bool = False
    volume: float = 1.0
    rate: float = 1.0
    loop: bool = False
    started_at: float = 0.0
    paused_at: float | None = None
    paused_total: float = 0.0
    fade: _Fade | None = None

    def elapsed_ms(self, now: float) -> float:
        """Playback time of the voice in milliseconds, scaled by rate."""
        end = self.paused_at if self.paused_at is not None else now
        return max(0.0, end - self.started_at - self.paused_total) * 1000.0 * self.rate


class SoundHandle(ABC):
    """Loaded sound that can be played, paused and queried.

    Listeners registered with ``on`` are called as
    ``callback(sound_id, error=None)``.
    """

    def __init__(self, source: SoundSource, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the handle.

        Args:
            source: Source descriptor the handle was loaded from.
            clock: Monotonic time source in seconds.
        """
        self.source = source
        self.load_error: str | None = None
        self._clock = clock
        self._volume = clamp(source.volume, 0.0, 1.0)
        self._rate = source.rate if source.rate > 0 else 1.0
        self._loop = source.loop
        self._voices: dict[int, Voice] = {}
        self._next_sound_id = 1
        self._listeners: dict[str, list[HandleCallback]] = defaultdict(list)

    # ------------------------------------------------------------------ events

    def on(self, event: str, callback: HandleCallback) -> None:
        """Register a lifecycle listener.

        Raises:
            ValueError: If the event name is unknown.
        """
        if event not in HANDLE_EVENTS:
            raise ValueError(f"Unknown handle event: {event}")
        self._listeners[event].append(callback)

    def off(self, event: str, callback: HandleCallback | None = None) -> None:
        """Remove one listener, or all listeners of an event."""
        if callback is None:
            self._listeners.pop(event, None)
        elif callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)

    def _emit(self, event: str, sound_id: int | None = None, error: str | None = None) -> None:
        for callback in list(self._listeners.get(event, [])):
            callback(sound_id, error=error)

    # --------------------------------------------------------------- transport

    @property
    def name(self) -> str:
        """Display name of the handle (first source path)."""
        return self.source.src[0] if self.source.src else "<empty>"

    def play(self, sprite: str | None = None) -> int | None:
        """Start a new voice, or resume the single paused voice.

        Args:
            sprite: Optional sprite name to play instead of the whole sound.

        Returns:
            Sound id of the voice, or None if playback could not start.
        """
        if self.load_error is not None:
            self._emit("loaderror", None, self.load_error)
            return None

        if sprite is None:
            paused = [voice for voice in self._voices.values() if voice.paused]
            if len(paused) == 1:
                return self._resume(paused[0])

        if sprite is not None and sprite not in self.source.sprite:
            logger.warning("Unknown sprite %r for %s", sprite, self.name)
            return None

        voice = Voice(
            sound_id=self._next_sound_id,
            sprite=sprite,
            volume=self._volume,
            rate=self._rate,
            loop=self._loop,
            started_at=self._clock(),
        )
        self._next_sound_id += 1

        try:
            self._start_voice(voice)
        except PlaybackEngineError as e:
            logger.warning("Failed to start %s: %s", self.name, e)
            return None

        self._voices[voice.sound_id] = voice
        self._emit("play", voice.sound_id)
        return voice.sound_id

    def _resume(self, voice: Voice) -> int | None:
        try:
            self._resume_voice(voice)
        except PlaybackEngineError as e:
            logger.warning("Failed to resume %s: %s", self.name, e)
            return None
        if voice.paused_at is not None:
            voice.paused_total += self._clock() - voice.paused_at
        voice.paused = False
        voice.paused_at = None
        self._emit("play", voice.sound_id)
        return voice.sound_id

    def pause(self, sound_id: int | None = None) -> None:
        """Pause one voice, or every playing voice."""
        for voice in self._targets(sound_id):
            if voice.paused:
                continue
            try:
                self._pause_voice(voice)
            except PlaybackEngineError as e:
                logger.warning("Failed to pause %s: %s", self.name, e)
                continue
            voice.paused = True
            voice.paused_at = self._clock()
            self._emit("pause", voice.sound_id)

    def stop(self, sound_id: int | None = None) -> None:
        """Stop one voice, or every voice.

        A ``stop`` event is emitted even when nothing was playing.
        """
        targets = list(self._targets(sound_id))
        if not targets:
            self._emit("stop", sound_id)
            return
        for voice in targets:
            try:
                self._stop_voice(voice)
            except PlaybackEngineError as e:
                logger.warning("Error stopping %s: %s", self.name, e)
            self._voices.pop(voice.sound_id, None)
            self._emit("stop", voice.sound_id)

    def volume(self, value: float | None = None, sound_id: int | None = None) -> float:
        """Get or set the volume of the handle or of one voice."""
        if value is None:
            voice = self._voices.get(sound_id) if sound_id is not None else None
            return voice.volume if voice else self._volume

        value = clamp(float(value), 0.0, 1.0)
        if sound_id is None:
            self._volume = value
        for voice in self._targets(sound_id):
            voice.volume = value
            voice.fade = None
            self._apply_volume(voice)
        return value

    def rate(self, value: float | None = None, sound_id: int | None = None) -> float:
        """Get or set the playback rate of the handle or of one voice."""
        if value is None:
            voice = self._voices.get(sound_id) if sound_id is not None else None
            return voice.rate if voice else self._rate

        value = float(value)
        if value <= 0:
            logger.warning("Ignoring non-positive rate %s for %s", value, self.name)
            return self._rate
        if sound_id is None:
            self._rate = value
        now = self._clock()
        for voice in self._targets(sound_id):
            # Rebase elapsed time so sprite timing stays continuous
            elapsed = voice.elapsed_ms(now)
            voice.rate = value
            voice.started_at = now - elapsed / (1000.0 * value)
            voice.paused_total = 0.0
            if voice.paused_at is not None:
                voice.paused_at = now
            self._apply_rate(voice)
        return value

    def loop(self, value: bool | None = None, sound_id: int | None = None) -> bool:
        """Get or set looping for the handle or one voice."""
        if value is None:
            voice = self._voices.get(sound_id) if sound_id is not None else None
            return voice.loop if voice else self._loop

        value = bool(value)
        if sound_id is None:
            self._loop = value
        for voice in self._targets(sound_id):
            voice.loop = value
            self._apply_loop(voice)
        return value

    def fade(self, start: float, end: float, duration_ms: float, sound_id: int | None = None) -> None:
        """Fade the volume of one voice, or of every voice.

        Progress is applied by ``update``. Without active voices the handle
        volume jumps to ``end``.
        """
        start = clamp(float(start), 0.0, 1.0)
        end = clamp(float(end), 0.0, 1.0)
        targets = list(self._targets(sound_id))
        if sound_id is None:
            self._volume = end
        if not targets or duration_ms <= 0:
            for voice in targets:
                voice.volume = end
                self._apply_volume(voice)
            return
        now = self._clock()
        for voice in targets:
            voice.volume = start
            voice.fade = _Fade(start, end, duration_ms / 1000.0, now)
            self._apply_volume(voice)

    def playing(self, sound_id: int | None = None) -> bool:
        """Check whether a voice (or any voice) is playing."""
        return any(not voice.paused for voice in self._targets(sound_id))

    def voices(self) -> list[int]:
        """Sound ids of the live voices."""
        return list(self._voices)

    def _targets(self, sound_id: int | None) -> Iterator[Voice]:
        if sound_id is None:
            yield from list(self._voices.values())
        elif sound_id in self._voices:
            yield self._voices[sound_id]

    # ------------------------------------------------------------------ update

    def update(self) -> None:
        """Advance fades and detect voices that reached their end."""
        now = self._clock()
        for voice in list(self._voices.values()):
            if voice.fade is not None:
                self._step_fade(voice, now)

            if voice.paused:
                continue

            if voice.sprite is not None:
                _offset, duration = self.source.sprite[voice.sprite]
                if voice.elapsed_ms(now) < duration:
                    continue
                if voice.loop:
                    self._restart_voice(voice, now)
                    continue
                try:
                    self._stop_voice(voice)
                except PlaybackEngineError as e:
                    logger.debug("Error stopping finished sprite on %s: %s", self.name, e)
                self._finish(voice)
            elif self._voice_finished(voice):
                self._finish(voice)

    def _step_fade(self, voice: Voice, now: float) -> None:
        fade = voice.fade
        if fade is None:
            return
        progress = min((now - fade.started_at) / fade.duration, 1.0) if fade.duration > 0 else 1.0
        voice.volume = fade.start + (fade.end - fade.start) * progress
        self._apply_volume(voice)
        if progress >= 1.0:
            voice.fade = None
            self._emit("fade", voice.sound_id)

    def _restart_voice(self, voice: Voice, now: float) -> None:
        try:
            self._stop_voice(voice)
            self._start_voice(voice)
        except PlaybackEngineError as e:
            logger.warning("Failed to loop sprite on %s: %s", self.name, e)
            self._finish(voice)
            return
        voice.started_at = now
        voice.paused_total = 0.0

    def _finish(self, voice: Voice) -> None:
        self._voices.pop(voice.sound_id, None)
        self._emit("end", voice.sound_id)

    # ----------------------------------------------------------- backend hooks

    @abstractmethod
    def _start_voice(self, voice: Voice) -> None:
        """Start playback of a voice and set ``voice.channel``."""

    @abstractmethod
    def _pause_voice(self, voice: Voice) -> None:
        """Pause a playing voice."""

    @abstractmethod
    def _resume_voice(self, voice: Voice) -> None:
        """Resume a paused voice."""

    @abstractmethod
    def _stop_voice(self, voice: Voice) -> None:
        """Stop a voice."""

    @abstractmethod
    def _apply_volume(self, voice: Voice) -> None:
        """Push ``voice.volume`` to the backend."""

    @abstractmethod
    def _apply_rate(self, voice: Voice) -> None:
        """Push ``voice.rate`` to the backend."""

    @abstractmethod
    def _apply_loop(self, voice: Voice) -> None:
        """Push ``voice.loop`` to the backend."""

    @abstractmethod
    def _voice_finished(self, voice: Voice) -> bool:
        """Check whether the backend finished playing a non-sprite voice."""

    def release(self) -> None:
        """Stop every voice and free backend resources."""
        for voice in list(self._voices.values()):
            try:
                self._stop_voice(voice)
            except PlaybackEngineError as e:
                logger.debug("Error releasing voice on %s: %s", self.name, e)
        self._voices.clear()


class IPlaybackEngine(ABC):
    """Engine that loads sounds and offers engine-wide controls.

    Engine-wide controls act on every handle the engine has loaded,
    independent of any registry bookkeeping.
    """

    def __init__(self) -> None:
        """Initialize engine bookkeeping (not started yet)."""
        self._initialized = False
        self._handles: list[SoundHandle] = []
        self._muted = False
        self._master_volume = 1.0

    @property
    def is_initialized(self) -> bool:
        """Whether ``initialize`` completed."""
        return self._initialized

    @abstractmethod
    def initialize(self, config: dict[str, Any]) -> None:
        """Start the engine.

        Raises:
            EngineUnavailableError: If the backend cannot start.
        """

    @abstractmethod
    def _create_handle(self, source: SoundSource) -> SoundHandle:
        """Create a backend handle for a source.

        Asset failures are reported through ``handle.load_error`` instead of
        raising.
        """

    def load(self, source: SoundSource) -> SoundHandle:
        """Load a source into a handle.

        Raises:
            PlaybackEngineError: If the engine is not initialized.
        """
        if not self._initialized:
            raise PlaybackEngineError("Engine not initialized")
        handle = self._create_handle(source)
        self._handles.append(handle)
        if handle.load_error:
            logger.error("Failed to load sound %s: %s", handle.name, handle.load_error)
        else:
            logger.debug("Loaded sound: %s", handle.name)
        return handle

    def unload(self, handle: SoundHandle) -> None:
        """Release a handle and forget it.

        Unknown handles are ignored.
        """
        if handle not in self._handles:
            return
        self._handles.remove(handle)
        handle.release()
        logger.debug("Unloaded sound: %s", handle.name)

    def mute(self, muted: bool) -> None:
        """Mute or unmute every sound."""
        self._muted = muted
        self._apply_master()
        logger.debug("Engine %s", "muted" if muted else "unmuted")

    def set_volume(self, volume: float) -> None:
        """Set the engine-wide volume (0.0 to 1.0)."""
        self._master_volume = clamp(volume, 0.0, 1.0)
        self._apply_master()
        logger.debug("Set master volume to %.2f", self._master_volume)

    def get_volume(self) -> float:
        """Engine-wide volume."""
        return self._master_volume

    @property
    def muted(self) -> bool:
        """Whether the engine is muted."""
        return self._muted

    def stop_all(self) -> None:
        """Stop every voice of every loaded handle."""
        for handle in list(self._handles):
            handle.stop()

    def update(self) -> None:
        """Advance backend processing, fades and end detection (once per frame)."""
        for handle in list(self._handles):
            handle.update()

    def shutdown(self) -> None:
        """Release every handle and stop the engine."""
        for handle in self._handles:
            handle.release()
        self._handles.clear()
        self._initialized = False

    @abstractmethod
    def _apply_master(self) -> None:
        """Push mute state and master volume to the backend."""
