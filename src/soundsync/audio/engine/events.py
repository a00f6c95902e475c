"""Typed engine events and the channel that delivers them.

Handle callbacks do not touch the state store directly. They post an
``EngineEvent`` on the ``EngineEventChannel``, and the channel hands events
to its single consumer in posting order. A post made while the consumer is
running is queued and delivered in the same drain, so the consumer is never
re-entered.
"""

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from soundsync.audio.categories import Category
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """Lifecycle event emitted by a playback engine handle.

    Attributes:
        kind: Event name (play, pause, stop, end, loaderror, fade).
        category: Category of the sound.
        key: Registry key of the sound.
        sound_id: Voice id, if any.
        error: Error description for ``loaderror``.
        timestamp: Epoch seconds when the event was posted.
    """

    kind: str
    category: Category
    key: str
    sound_id: int | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


class EngineEventChannel:
    """Ordered, non re-entrant delivery of engine events to one consumer."""

    def __init__(self, consumer: Callable[[EngineEvent], None]) -> None:
        """Initialize the channel.

        Args:
            consumer: Sole receiver of every posted event.
        """
        self._consumer = consumer
        self._queue: deque[EngineEvent] = deque()
        self._draining = False
        self._delivered = 0

    def post(self, event: EngineEvent) -> None:
        """Queue an event and deliver it unless a drain is in progress."""
        self._queue.append(event)
        if self._draining:
            return

        self._draining = True
        try:
            while self._queue:
                pending = self._queue.popleft()
                try:
                    self._consumer(pending)
                except Exception:  # pylint: disable=broad-exception-caught
                    logger.exception("Failed to handle engine event %s", pending)
                self._delivered += 1
        finally:
            self._draining = False

    @property
    def delivered(self) -> int:
        """Number of events handed to the consumer."""
        return self._delivered

    @property
    def pending(self) -> int:
        """Number of queued events not delivered yet."""
        return len(self._queue)
