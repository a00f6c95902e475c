"""pyttsx3 speech engine.

Runs pyttsx3 with an external event loop (``startLoop(False)``) so speech
callbacks are dispatched from ``update`` on the caller's thread.

pyttsx3 has no pitch control and no pause, so pitch is ignored and pause is
emulated: the utterance is stopped and spoken again from the start on
resume.

Typical usage:
    engine = Pyttsx3SpeechEngine(base_rate=180)
    engine.initialize({})
    engine.speak(Utterance(1, "Welcome"))
    while engine.is_speaking():
        engine.update()
"""

from typing import Any

from soundsync.audio.speech.base import ISpeechEngine, Utterance
from soundsync.core.errors import EngineUnavailableError
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class Pyttsx3SpeechEngine(ISpeechEngine):
    """Speech engine backed by the platform voices through pyttsx3.

    Attributes:
        base_rate: Speech rate in words per minute for a rate multiplier of 1.
        voice_name: Voice name to use (platform-specific), or None.
    """

    def __init__(
        self,
        base_rate: int = 180,
        voice_name: str | None = None,
        driver_name: str | None = None,
    ) -> None:
        """Initialize the engine (not started yet).

        Args:
            base_rate: Words per minute at rate 1.0.
            voice_name: Substring of the voice name to select.
            driver_name: pyttsx3 driver override (e.g. ``espeak``).
        """
        super().__init__()
        self.base_rate = base_rate
        self.voice_name = voice_name
        self._driver_name = driver_name
        self._engine: Any = None
        self._default_volume = 1.0
        self._current: Utterance | None = None
        self._paused: Utterance | None = None
        self._active_name: str | None = None
        self._generation = 0

    def initialize(self, config: dict[str, Any]) -> None:
        """Create the pyttsx3 engine and start its external loop.

        Raises:
            EngineUnavailableError: If pyttsx3 or a platform driver is missing.
        """
        if self._engine is not None:
            logger.warning("pyttsx3 engine already initialized")
            return

        try:
            import pyttsx3

            engine = pyttsx3.init(self._driver_name)
        except ImportError as e:
            raise EngineUnavailableError("pyttsx3 not installed. Run: pip install pyttsx3") from e
        except Exception as e:
            raise EngineUnavailableError(f"No speech driver available: {e}") from e

        engine.connect("started-utterance", self._on_started)
        engine.connect("finished-utterance", self._on_finished)
        engine.connect("error", self._on_error)

        if self.voice_name:
            for voice in engine.getProperty("voices"):
                if self.voice_name.lower() in voice.name.lower():
                    engine.setProperty("voice", voice.id)
                    break
            else:
                logger.warning("Voice %r not found, using default", self.voice_name)

        self._default_volume = engine.getProperty("volume")
        engine.startLoop(False)
        self._engine = engine
        logger.info(
            "pyttsx3 initialized: rate=%d, voice=%s", self.base_rate, self.voice_name or "default"
        )

    def _on_started(self, name: str) -> None:
        if name == self._active_name and self._current is not None:
            self._emit("start", self._current.utterance_id)

    def _on_finished(self, name: str, completed: bool) -> None:
        # Names from stopped or paused utterances are stale
        if name != self._active_name or self._current is None:
            return
        utterance = self._current
        self._current = None
        self._active_name = None
        if not completed:
            logger.debug("Utterance %d interrupted", utterance.utterance_id)
        self._emit("end", utterance.utterance_id)

    def _on_error(self, name: str, exception: Exception) -> None:
        if name != self._active_name or self._current is None:
            return
        utterance = self._current
        self._current = None
        self._active_name = None
        self._emit("error", utterance.utterance_id, error=str(exception))

    def _say(self, utterance: Utterance) -> None:
        rate = utterance.rate if utterance.rate is not None else 1.0
        self._engine.setProperty("rate", int(self.base_rate * rate))
        volume = utterance.volume if utterance.volume is not None else self._default_volume
        self._engine.setProperty("volume", volume)
        if utterance.pitch is not None:
            logger.debug("pyttsx3 does not support pitch, ignoring %.2f", utterance.pitch)
        self._generation += 1
        self._active_name = f"{utterance.utterance_id}:{self._generation}"
        self._engine.say(utterance.text, self._active_name)

    def speak(self, utterance: Utterance) -> None:
        """Queue an utterance; it starts on the next ``update``."""
        if self._engine is None:
            raise EngineUnavailableError("pyttsx3 engine not initialized")
        self._paused = None
        self._current = utterance
        self._say(utterance)

    def cancel(self) -> None:
        """Stop speaking and clear the queue."""
        self._current = None
        self._paused = None
        self._active_name = None
        if self._engine is not None:
            self._engine.stop()

    def pause(self) -> None:
        """Stop the utterance but remember it for ``resume``."""
        if self._engine is None or self._current is None or self._paused is not None:
            return
        self._paused = self._current
        self._active_name = None
        self._engine.stop()

    def resume(self) -> None:
        """Speak the paused utterance again from the start."""
        if self._engine is None or self._paused is None:
            return
        utterance = self._paused
        self._paused = None
        self._current = utterance
        self._say(utterance)

    def is_speaking(self) -> bool:
        """Whether an utterance is active (speaking or paused)."""
        return self._current is not None

    def is_paused(self) -> bool:
        """Whether the active utterance is paused."""
        return self._paused is not None

    def update(self) -> None:
        """Run one iteration of the pyttsx3 loop."""
        if self._engine is not None:
            self._engine.iterate()

    def shutdown(self) -> None:
        """End the pyttsx3 loop."""
        if self._engine is None:
            return
        try:
            self._engine.endLoop()
        except RuntimeError as e:
            logger.debug("pyttsx3 loop already ended: %s", e)
        self._engine = None
        logger.info("pyttsx3 engine shut down")
