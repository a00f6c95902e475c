"""Speech synthesis.

``create_speech_engine`` returns None when the requested backend is not
available, which leaves the speech facade in its unsupported no-op mode.
"""

from typing import Any

from soundsync.audio.speech.base import ISpeechEngine, SpeechStatus, Utterance
from soundsync.audio.speech.headless_engine import HeadlessSpeechEngine
from soundsync.audio.speech.speech_facade import SpeechFacade
from soundsync.core.errors import EngineUnavailableError
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)

SPEECH_BACKENDS = ("pyttsx3", "headless", "none")


def create_speech_engine(backend: str, config: dict[str, Any] | None = None) -> ISpeechEngine | None:
    """Create and initialize a speech engine.

    Args:
        backend: One of ``pyttsx3``, ``headless`` or ``none``.
        config: Backend options (``base_rate``, ``voice``, ``driver``).

    Returns:
        The initialized engine, or None if speech is unavailable.
    """
    config = config or {}
    engine: ISpeechEngine
    if backend == "none":
        return None
    if backend == "headless":
        engine = HeadlessSpeechEngine()
    elif backend == "pyttsx3":
        from soundsync.audio.speech.pyttsx_engine import Pyttsx3SpeechEngine

        engine = Pyttsx3SpeechEngine(
            base_rate=int(config.get("base_rate", 180)),
            voice_name=config.get("voice"),
            driver_name=config.get("driver"),
        )
    else:
        logger.warning("Unknown speech backend %r, speech disabled", backend)
        return None

    try:
        engine.initialize(config)
    except EngineUnavailableError as e:
        logger.warning("Speech synthesis not supported: %s", e)
        return None
    return engine


__all__ = [
    "SPEECH_BACKENDS",
    "HeadlessSpeechEngine",
    "ISpeechEngine",
    "SpeechFacade",
    "SpeechStatus",
    "Utterance",
    "create_speech_engine",
]
