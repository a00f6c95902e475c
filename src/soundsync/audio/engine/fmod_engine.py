"""FMOD playback engine implementation.

This module provides a concrete implementation of the IPlaybackEngine
interface using the pyfmodex library. Each voice plays on its own FMOD
channel; engine-wide mute and volume go through the master channel group.

Typical usage example:
    from soundsync.audio.engine.fmod_engine import FMODPlaybackEngine

    engine = FMODPlaybackEngine()
    engine.initialize({"max_channels": 32})
    handle = engine.load(SoundSource(src=["sounds/click.wav"]))
    handle.play()
"""

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

try:
    import pyfmodex  # type: ignore[import-untyped]

    FMOD_AVAILABLE = True
except (ImportError, OSError, RuntimeError):
    # pyfmodex raises at import time when the native library is missing
    FMOD_AVAILABLE = False
    pyfmodex = None

from soundsync.audio.engine.base import IPlaybackEngine, SoundHandle, SoundSource, Voice
from soundsync.core.errors import EngineUnavailableError, PlaybackEngineError
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class FMODError(PlaybackEngineError):
    """Raised when FMOD operations fail."""


class FMODSoundHandle(SoundHandle):
    """Handle backed by an FMOD sound object."""

    def __init__(
        self,
        source: SoundSource,
        fmod_sound: Any,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the handle.

        Args:
            source: Source descriptor.
            fmod_sound: pyfmodex Sound, or None if loading failed.
            clock: Monotonic time source.
        """
        super().__init__(source, clock)
        self._fmod_sound = fmod_sound

    def _start_voice(self, voice: Voice) -> None:
        if self._fmod_sound is None:
            raise FMODError("Sound not loaded")
        try:
            # Play paused first so properties apply before the first sample
            channel = self._fmod_sound.play(paused=True)
            channel.volume = voice.volume
            channel.pitch = voice.rate
            if voice.sprite is not None:
                offset, _duration = self.source.sprite[voice.sprite]
                channel.set_position(int(offset), pyfmodex.enums.TIMEUNIT.MS)
                # Sprite looping is driven by update(), not by FMOD
                channel.loop_count = 0
            else:
                channel.loop_count = -1 if voice.loop else 0
            channel.paused = False
        except Exception as e:
            raise FMODError(f"Failed to play sound {self.name}: {e}") from e
        voice.channel = channel
        logger.debug("Playing sound: %s (sound_id=%d)", self.name, voice.sound_id)

    def _pause_voice(self, voice: Voice) -> None:
        try:
            voice.channel.paused = True
        except Exception as e:
            raise FMODError(f"Error pausing {self.name}: {e}") from e

    def _resume_voice(self, voice: Voice) -> None:
        try:
            voice.channel.paused = False
        except Exception as e:
            raise FMODError(f"Error resuming {self.name}: {e}") from e

    def _stop_voice(self, voice: Voice) -> None:
        if voice.channel is None:
            return
        try:
            voice.channel.stop()
        except Exception as e:
            # Channels that already finished are invalid in FMOD
            logger.debug("Channel for %s already released: %s", self.name, e)

    def _apply_volume(self, voice: Voice) -> None:
        try:
            voice.channel.volume = voice.volume
        except Exception as e:
            logger.warning("Error updating volume on %s: %s", self.name, e)

    def _apply_rate(self, voice: Voice) -> None:
        try:
            voice.channel.pitch = voice.rate
        except Exception as e:
            logger.warning("Error updating rate on %s: %s", self.name, e)

    def _apply_loop(self, voice: Voice) -> None:
        if voice.sprite is not None:
            return
        try:
            voice.channel.loop_count = -1 if voice.loop else 0
        except Exception as e:
            logger.warning("Error updating loop on %s: %s", self.name, e)

    def _voice_finished(self, voice: Voice) -> bool:
        try:
            return not voice.channel.is_playing
        except Exception:
            # Channel is invalid once FMOD recycled it
            return True

    def release(self) -> None:
        """Stop every voice and release the FMOD sound."""
        super().release()
        if self._fmod_sound is not None:
            try:
                self._fmod_sound.release()
            except Exception as e:
                logger.warning("Error unloading sound %s: %s", self.name, e)
            self._fmod_sound = None


class FMODPlaybackEngine(IPlaybackEngine):
    """FMOD-based playback engine.

    Examples:
        >>> engine = FMODPlaybackEngine()
        >>> engine.initialize({"max_channels": 32})
        >>> handle = engine.load(SoundSource(src=["sounds/beep.wav"]))
        >>> handle.play()
        >>> engine.shutdown()
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the FMOD engine (not started yet).

        Raises:
            EngineUnavailableError: If pyfmodex is not installed.
        """
        if not FMOD_AVAILABLE:
            raise EngineUnavailableError("pyfmodex is not installed. Install it with: uv add pyfmodex")

        super().__init__()
        self._clock = clock
        self._system: Any = None  # pyfmodex.System

    def initialize(self, config: dict[str, Any]) -> None:
        """Initialize FMOD audio system.

        Args:
            config: Configuration with keys:
                - max_channels: Maximum number of channels (default: 32)

        Raises:
            EngineUnavailableError: If initialization fails.
        """
        if self._initialized:
            logger.warning("FMOD engine already initialized")
            return

        try:
            self._system = pyfmodex.System()
            max_channels = config.get("max_channels", 32)
            self._system.init(maxchannels=max_channels)
            self._initialized = True
            logger.info("FMOD initialized successfully (max_channels=%d)", max_channels)
        except Exception as e:
            raise EngineUnavailableError(f"Failed to initialize FMOD: {e}") from e

    def get_system(self) -> Any:
        """Get the FMOD system, or None when not initialized."""
        return self._system if self._initialized else None

    def _create_handle(self, source: SoundSource) -> SoundHandle:
        errors: list[str] = []
        for path in source.src:
            if not Path(path).exists():
                errors.append(f"Sound file not found: {path}")
                continue
            try:
                # Loop mode is always on; channels pick once or forever via loop_count
                mode_flags = (
                    pyfmodex.flags.MODE.DEFAULT
                    | pyfmodex.flags.MODE.TWOD
                    | pyfmodex.flags.MODE.LOOP_NORMAL
                )
                if source.preload:
                    fmod_sound = self._system.create_sound(
                        path, mode=mode_flags | pyfmodex.flags.MODE.CREATESAMPLE
                    )
                else:
                    fmod_sound = self._system.create_stream(
                        path, mode=mode_flags | pyfmodex.flags.MODE.CREATESTREAM
                    )
            except Exception as e:
                errors.append(f"Failed to load sound {path}: {e}")
                continue
            logger.info("Loaded sound: %s", path)
            return FMODSoundHandle(source, fmod_sound, self._clock)

        handle = FMODSoundHandle(source, None, self._clock)
        handle.load_error = "; ".join(errors) or "No source path given"
        return handle

    def _apply_master(self) -> None:
        if not self._initialized or not self._system:
            return
        try:
            group = self._system.master_channel_group
            group.mute = self._muted
            group.volume = self._master_volume
        except Exception as e:
            logger.warning("Error updating master channel group: %s", e)

    def update(self) -> None:
        """Update FMOD system, fades and end detection.

        Should be called once per frame to process audio.
        """
        if not self._initialized or not self._system:
            return
        try:
            self._system.update()
        except Exception as e:
            logger.warning("Error updating FMOD system: %s", e)
        super().update()

    def shutdown(self) -> None:
        """Shutdown the FMOD engine.

        Stops all voices, unloads sounds, and releases resources.
        """
        if not self._initialized:
            return

        super().shutdown()

        if self._system:
            try:
                self._system.release()
            except Exception as e:
                logger.warning("Error releasing FMOD system: %s", e)
        self._system = None
        logger.info("FMOD engine shut down")
