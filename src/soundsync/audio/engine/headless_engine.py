"""In-process playback engine without an audio device.

Used for tests, CI and dry runs of the command line tool. Voices start
immediately and only end when ``finish`` is called (or, for sprites, when the
clock passes the sprite duration).

Typical usage example:
    engine = HeadlessPlaybackEngine()
    engine.initialize({})
    handle = engine.load(SoundSource(src=["click.wav"]))
    sound_id = handle.play()
    handle.finish(sound_id)  # emits "end"
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from soundsync.audio.engine.base import IPlaybackEngine, SoundHandle, SoundSource, Voice
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


@dataclass
class HeadlessChannel:
    """Fake backend channel recording what the handle asked for."""

    sprite: str | None
    volume: float
    rate: float
    loop: bool
    paused: bool = False
    stopped: bool = False
    finished: bool = False


class HeadlessSoundHandle(SoundHandle):
    """Handle whose voices live only in memory."""

    def __init__(self, source: SoundSource, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__(source, clock)
        self.started: list[HeadlessChannel] = []

    def finish(self, sound_id: int | None = None) -> None:
        """Simulate the natural end of one voice, or of every voice."""
        for voice in list(self._targets(sound_id)):
            voice.channel.finished = True
        self.update()

    def _start_voice(self, voice: Voice) -> None:
        voice.channel = HeadlessChannel(
            sprite=voice.sprite, volume=voice.volume, rate=voice.rate, loop=voice.loop
        )
        self.started.append(voice.channel)

    def _pause_voice(self, voice: Voice) -> None:
        voice.channel.paused = True

    def _resume_voice(self, voice: Voice) -> None:
        voice.channel.paused = False

    def _stop_voice(self, voice: Voice) -> None:
        voice.channel.stopped = True

    def _apply_volume(self, voice: Voice) -> None:
        voice.channel.volume = voice.volume

    def _apply_rate(self, voice: Voice) -> None:
        voice.channel.rate = voice.rate

    def _apply_loop(self, voice: Voice) -> None:
        voice.channel.loop = voice.loop

    def _voice_finished(self, voice: Voice) -> bool:
        return voice.channel.finished and not voice.loop


class HeadlessPlaybackEngine(IPlaybackEngine):
    """Playback engine for environments without audio output.

    Sources whose path is listed in ``fail_sources`` (or that have no path
    at all) fail to load, which exercises the ``loaderror`` path.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        fail_sources: set[str] | None = None,
    ) -> None:
        """Initialize the engine (not started yet).

        Args:
            clock: Monotonic time source shared by all handles.
            fail_sources: Source paths that simulate a load failure.
        """
        super().__init__()
        self._clock = clock
        self.fail_sources = set(fail_sources or ())

    def initialize(self, config: dict[str, Any]) -> None:
        """Start the engine. Configuration is accepted and ignored."""
        if self._initialized:
            logger.warning("Headless engine already initialized")
            return
        self._initialized = True
        logger.info("Headless playback engine initialized")

    def _create_handle(self, source: SoundSource) -> SoundHandle:
        handle = HeadlessSoundHandle(source, self._clock)
        if not source.src:
            handle.load_error = "No source path given"
        elif all(path in self.fail_sources for path in source.src):
            handle.load_error = f"Cannot decode {source.src[0]}"
        return handle

    def _apply_master(self) -> None:
        logger.debug(
            "Headless master: muted=%s volume=%.2f", self._muted, self._master_volume
        )

    @property
    def handles(self) -> list[SoundHandle]:
        """Every handle loaded so far."""
        return list(self._handles)
