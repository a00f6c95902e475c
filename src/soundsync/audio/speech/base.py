"""Speech engine interface.

A speech engine speaks one utterance at a time and reports progress through
``start``, ``end`` and ``error`` callbacks, called as
``callback(utterance_id, error=None)``.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

SPEECH_EVENTS = ("start", "end", "error")

RATE_RANGE = (0.1, 10.0)
PITCH_RANGE = (0.0, 2.0)
VOLUME_RANGE = (0.0, 1.0)


class SpeechStatus(Enum):
    """Speech facade state."""

    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"


@dataclass(frozen=True)
class Utterance:
    """One speech request.

    Attributes:
        utterance_id: Identifier passed to engine callbacks.
        text: Text to speak.
        rate: Rate multiplier (0.1 to 10), or None for the engine default.
        pitch: Pitch (0 to 2), or None for the engine default.
        volume: Volume (0 to 1), or None for the engine default.
    """

    utterance_id: int
    text: str
    rate: float | None = None
    pitch: float | None = None
    volume: float | None = None


class ISpeechEngine(ABC):
    """Abstract speech synthesis engine."""

    def __init__(self) -> None:
        """Initialize callback bookkeeping."""
        self._callbacks: dict[str, list[Callable[..., None]]] = defaultdict(list)

    def on(self, event: str, callback: Callable[..., None]) -> None:
        """Register a callback for ``start``, ``end`` or ``error``.

        Raises:
            ValueError: If the event name is unknown.
        """
        if event not in SPEECH_EVENTS:
            raise ValueError(f"Unknown speech event: {event}")
        self._callbacks[event].append(callback)

    def _emit(self, event: str, utterance_id: int, error: str | None = None) -> None:
        for callback in list(self._callbacks.get(event, [])):
            callback(utterance_id, error=error)

    def initialize(self, config: dict[str, Any]) -> None:  # noqa: B027
        """Start the engine. Engines without setup keep the default."""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Start speaking an utterance."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop speaking and drop the current utterance."""

    @abstractmethod
    def pause(self) -> None:
        """Pause the current utterance."""

    @abstractmethod
    def resume(self) -> None:
        """Resume a paused utterance."""

    @abstractmethod
    def is_speaking(self) -> bool:
        """Whether an utterance is active (speaking or paused)."""

    @abstractmethod
    def is_paused(self) -> bool:
        """Whether the active utterance is paused."""

    def update(self) -> None:  # noqa: B027
        """Pump engine callbacks (once per frame)."""

    def shutdown(self) -> None:  # noqa: B027
        """Release engine resources."""
