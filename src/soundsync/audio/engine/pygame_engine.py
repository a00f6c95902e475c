"""pygame.mixer playback engine implementation.

Lightweight alternative to FMOD for platforms where only pygame is
installed. The mixer has no resampling, so playback rate is tracked but not
audible, and it has no master bus, so mute and master volume are folded into
every channel volume.

Typical usage example:
    from soundsync.audio.engine.pygame_engine import PygamePlaybackEngine

    engine = PygamePlaybackEngine()
    engine.initialize({"frequency": 44100, "max_channels": 32})
    handle = engine.load(SoundSource(src=["sounds/click.ogg"]))
    handle.play()
"""

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

try:
    import pygame

    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False
    pygame = None  # type: ignore[assignment]

from soundsync.audio.engine.base import IPlaybackEngine, SoundHandle, SoundSource, Voice
from soundsync.core.errors import EngineUnavailableError, PlaybackEngineError
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class PygameSoundHandle(SoundHandle):
    """Handle backed by a pygame.mixer.Sound."""

    def __init__(
        self,
        source: SoundSource,
        sound: Any,
        gain: Callable[[], float],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the handle.

        Args:
            source: Source descriptor.
            sound: pygame.mixer.Sound, or None if loading failed.
            gain: Returns the engine-wide gain (0 when muted).
            clock: Monotonic time source.
        """
        super().__init__(source, clock)
        self._sound = sound
        self._gain = gain
        self._sprite_sounds: dict[str, Any] = {}
        self._rate_warned = False

    def _sprite_sound(self, name: str) -> Any:
        if name not in self._sprite_sounds:
            offset, duration = self.source.sprite[name]
            frequency, size, channels = pygame.mixer.get_init()
            frame = channels * abs(size) // 8
            start = int(frequency * offset / 1000.0) * frame
            end = int(frequency * (offset + duration) / 1000.0) * frame
            raw = self._sound.get_raw()
            self._sprite_sounds[name] = pygame.mixer.Sound(buffer=raw[start:end])
        return self._sprite_sounds[name]

    def _start_voice(self, voice: Voice) -> None:
        if self._sound is None:
            raise PlaybackEngineError("Sound not loaded")
        try:
            if voice.sprite is not None:
                channel = self._sprite_sound(voice.sprite).play()
            else:
                channel = self._sound.play(loops=-1 if voice.loop else 0)
        except pygame.error as e:
            raise PlaybackEngineError(f"Failed to play sound {self.name}: {e}") from e
        if channel is None:
            raise PlaybackEngineError(f"No free mixer channel for {self.name}")
        voice.channel = channel
        self._apply_volume(voice)
        if voice.rate != 1.0:
            self._apply_rate(voice)
        logger.debug("Playing sound: %s (sound_id=%d)", self.name, voice.sound_id)

    def _pause_voice(self, voice: Voice) -> None:
        voice.channel.pause()

    def _resume_voice(self, voice: Voice) -> None:
        voice.channel.unpause()

    def _stop_voice(self, voice: Voice) -> None:
        if voice.channel is not None:
            voice.channel.stop()

    def _apply_volume(self, voice: Voice) -> None:
        if voice.channel is not None:
            voice.channel.set_volume(voice.volume * self._gain())

    def _apply_rate(self, voice: Voice) -> None:
        if not self._rate_warned:
            logger.debug("pygame.mixer cannot change playback rate (%s)", self.name)
            self._rate_warned = True

    def _apply_loop(self, voice: Voice) -> None:
        logger.debug("Loop change on %s applies to the next play", self.name)

    def _voice_finished(self, voice: Voice) -> bool:
        return not voice.channel.get_busy()

    def refresh_gain(self) -> None:
        """Re-apply volumes after an engine-wide gain change."""
        for voice in self._voices.values():
            self._apply_volume(voice)


class PygamePlaybackEngine(IPlaybackEngine):
    """Playback engine built on pygame.mixer."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the engine (not started yet).

        Raises:
            EngineUnavailableError: If pygame is not installed.
        """
        if not PYGAME_AVAILABLE:
            raise EngineUnavailableError("pygame is not installed. Install it with: uv add pygame")
        super().__init__()
        self._clock = clock

    def initialize(self, config: dict[str, Any]) -> None:
        """Initialize the mixer.

        Args:
            config: Configuration with keys:
                - frequency: Sample rate (default: 44100)
                - max_channels: Number of mixer channels (default: 32)

        Raises:
            EngineUnavailableError: If the mixer cannot start.
        """
        if self._initialized:
            logger.warning("pygame mixer already initialized")
            return
        try:
            pygame.mixer.init(frequency=config.get("frequency", 44100))
            pygame.mixer.set_num_channels(config.get("max_channels", 32))
        except pygame.error as e:
            raise EngineUnavailableError(f"Failed to initialize pygame mixer: {e}") from e
        self._initialized = True
        logger.info("pygame mixer initialized (%s)", pygame.mixer.get_init())

    def _gain(self) -> float:
        return 0.0 if self._muted else self._master_volume

    def _create_handle(self, source: SoundSource) -> SoundHandle:
        errors: list[str] = []
        for path in source.src:
            if not Path(path).exists():
                errors.append(f"Sound file not found: {path}")
                continue
            try:
                sound = pygame.mixer.Sound(path)
            except pygame.error as e:
                errors.append(f"Failed to load sound {path}: {e}")
                continue
            logger.info("Loaded sound: %s", path)
            return PygameSoundHandle(source, sound, self._gain, self._clock)

        handle = PygameSoundHandle(source, None, self._gain, self._clock)
        handle.load_error = "; ".join(errors) or "No source path given"
        return handle

    def _apply_master(self) -> None:
        for handle in self._handles:
            if isinstance(handle, PygameSoundHandle):
                handle.refresh_gain()

    def shutdown(self) -> None:
        """Stop every sound and quit the mixer."""
        if not self._initialized:
            return
        super().shutdown()
        pygame.mixer.quit()
        logger.info("pygame mixer shut down")
