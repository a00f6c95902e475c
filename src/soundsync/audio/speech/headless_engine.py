"""In-process speech engine without audio output.

Utterances start as soon as they are spoken and end when ``finish`` or
``fail`` is called. Used for tests and dry runs.
"""

from soundsync.audio.speech.base import ISpeechEngine, Utterance
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class HeadlessSpeechEngine(ISpeechEngine):
    """Speech engine that records utterances instead of speaking them."""

    def __init__(self) -> None:
        """Initialize the engine."""
        super().__init__()
        self.spoken: list[Utterance] = []
        self.cancelled: list[Utterance] = []
        self._current: Utterance | None = None
        self._paused = False

    @property
    def current(self) -> Utterance | None:
        """Utterance being spoken, if any."""
        return self._current

    def speak(self, utterance: Utterance) -> None:
        """Record the utterance and report its start."""
        self.spoken.append(utterance)
        self._current = utterance
        self._paused = False
        logger.debug("Headless speech: %s", utterance.text)
        self._emit("start", utterance.utterance_id)

    def cancel(self) -> None:
        """Drop the current utterance and report its end."""
        utterance = self._current
        self._current = None
        self._paused = False
        if utterance is not None:
            self.cancelled.append(utterance)
            self._emit("end", utterance.utterance_id)

    def pause(self) -> None:
        """Pause the current utterance."""
        if self._current is not None:
            self._paused = True

    def resume(self) -> None:
        """Resume the current utterance."""
        if self._current is not None:
            self._paused = False

    def is_speaking(self) -> bool:
        """Whether an utterance is active."""
        return self._current is not None

    def is_paused(self) -> bool:
        """Whether the active utterance is paused."""
        return self._current is not None and self._paused

    def finish(self) -> None:
        """Simulate the natural end of the current utterance."""
        utterance = self._current
        if utterance is None:
            return
        self._current = None
        self._paused = False
        self._emit("end", utterance.utterance_id)

    def fail(self, error: str = "synthesis-failed") -> None:
        """Simulate a synthesis error on the current utterance."""
        utterance = self._current
        if utterance is None:
            return
        self._current = None
        self._paused = False
        self._emit("error", utterance.utterance_id, error=error)
