"""Speech facade with an idle/speaking/paused state machine.

At most one utterance is active: ``speak`` cancels whatever is being said
before starting the new text. Engine ``end`` and ``error`` callbacks return
the facade to idle, but only for the current utterance; callbacks from a
cancelled utterance are ignored.

When no speech engine is available every operation is a logged no-op.

Typical usage example:
    manager.tts.speak("Settings saved", rate=1.2)
    manager.tts.pause()
    manager.tts.resume()
    manager.tts.stop()
"""

import itertools

from soundsync.audio.engine.base import clamp
from soundsync.audio.speech.base import (
    PITCH_RANGE,
    RATE_RANGE,
    VOLUME_RANGE,
    ISpeechEngine,
    SpeechStatus,
    Utterance,
)
from soundsync.core.errors import EngineUnavailableError, Outcome
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


def _clamped(value: float | None, bounds: tuple[float, float]) -> float | None:
    if value is None:
        return None
    return clamp(float(value), *bounds)


class SpeechFacade:
    """Text-to-speech controls.

    Examples:
        >>> tts = SpeechFacade(HeadlessSpeechEngine())
        >>> tts.speak("hello")
        >>> tts.status
        <SpeechStatus.SPEAKING: 'speaking'>
    """

    def __init__(self, engine: ISpeechEngine | None) -> None:
        """Initialize the facade.

        Args:
            engine: Speech engine, or None when speech is unsupported.
        """
        self._engine = engine
        self._status = SpeechStatus.IDLE
        self._current: Utterance | None = None
        self._ids = itertools.count(1)
        self.last_outcome = Outcome.OK

        if engine is not None:
            engine.on("start", self._on_start)
            engine.on("end", self._on_end)
            engine.on("error", self._on_error)

    @property
    def available(self) -> bool:
        """Whether a speech engine is present."""
        return self._engine is not None

    @property
    def status(self) -> SpeechStatus:
        """Current speech state."""
        return self._status

    @property
    def current_utterance(self) -> Utterance | None:
        """Utterance being spoken or paused, if any."""
        return self._current

    def _require_engine(self, operation: str) -> ISpeechEngine | None:
        if self._engine is None:
            logger.warning("Speech synthesis not supported, ignoring %s", operation)
            self.last_outcome = Outcome.UNSUPPORTED
            return None
        self.last_outcome = Outcome.OK
        return self._engine

    def speak(
        self,
        text: str,
        rate: float | None = None,
        pitch: float | None = None,
        volume: float | None = None,
    ) -> Utterance | None:
        """Speak text, interrupting any current utterance.

        Args:
            text: Text to speak.
            rate: Rate multiplier (0.1 to 10), engine default when None.
            pitch: Pitch (0 to 2), engine default when None.
            volume: Volume (0 to 1), engine default when None.

        Returns:
            The started utterance, or None if nothing was spoken.
        """
        engine = self._require_engine("speak")
        if engine is None:
            return None

        self.stop()

        utterance = Utterance(
            utterance_id=next(self._ids),
            text=text,
            rate=_clamped(rate, RATE_RANGE),
            pitch=_clamped(pitch, PITCH_RANGE),
            volume=_clamped(volume, VOLUME_RANGE),
        )
        self._current = utterance
        self._status = SpeechStatus.SPEAKING
        try:
            engine.speak(utterance)
        except EngineUnavailableError as e:
            logger.warning("Speech engine unavailable: %s", e)
            self._reset()
            self.last_outcome = Outcome.ENGINE_UNAVAILABLE
            return None
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Speech engine failed to speak %r", text[:30])
            self._reset()
            return None

        logger.debug("Speaking utterance %d: %s", utterance.utterance_id, text[:30])
        # Engines that report synchronously may already have ended it
        return utterance if self._current is utterance else None

    def stop(self) -> None:
        """Stop any speech immediately."""
        engine = self._require_engine("stop")
        if engine is None:
            return
        # Reset first so the engine's own end callback is seen as stale
        self._reset()
        try:
            engine.cancel()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Speech engine failed to stop")

    def pause(self) -> None:
        """Pause ongoing speech."""
        engine = self._require_engine("pause")
        if engine is None or self._status is not SpeechStatus.SPEAKING:
            return
        try:
            engine.pause()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Speech engine failed to pause")
            return
        self._status = SpeechStatus.PAUSED

    def resume(self) -> None:
        """Resume paused speech."""
        engine = self._require_engine("resume")
        if engine is None or self._status is not SpeechStatus.PAUSED:
            return
        try:
            engine.resume()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Speech engine failed to resume")
            return
        self._status = SpeechStatus.SPEAKING

    def is_speaking(self) -> bool:
        """Whether the engine has an active utterance (speaking or paused)."""
        if self._engine is None:
            return False
        try:
            return bool(self._engine.is_speaking())
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Speech engine failed to report its status")
            return False

    def update(self) -> None:
        """Pump the speech engine."""
        if self._engine is None:
            return
        try:
            self._engine.update()
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Speech engine update failed: %s", e)

    def _reset(self) -> None:
        self._current = None
        self._status = SpeechStatus.IDLE

    def _is_current(self, utterance_id: int) -> bool:
        return self._current is not None and self._current.utterance_id == utterance_id

    def _on_start(self, utterance_id: int, error: str | None = None) -> None:
        if self._is_current(utterance_id):
            logger.debug("Utterance %d started", utterance_id)

    def _on_end(self, utterance_id: int, error: str | None = None) -> None:
        if self._is_current(utterance_id):
            logger.debug("Utterance %d finished", utterance_id)
            self._reset()

    def _on_error(self, utterance_id: int, error: str | None = None) -> None:
        if self._is_current(utterance_id):
            logger.warning("Speech error on utterance %d: %s", utterance_id, error)
            self._reset()
