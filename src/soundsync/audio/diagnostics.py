"""Developer diagnostics for the sound manager.

``EventLog`` keeps the most recent engine events and the latest state
snapshot so a developer tool can show what the engine reported and what the
store mirrors side by side.
"""

from collections import deque
from typing import Any

from soundsync.audio.engine.events import EngineEvent
from soundsync.audio.state import AudioState


class EventLog:
    """Bounded log of recent engine events plus the latest snapshot.

    Examples:
        >>> log = EventLog(capacity=2)
        >>> unsubscribe = manager.subscribe(log.on_snapshot)
        >>> log.lines()
        ['play sfx/core/click #1']
    """

    def __init__(self, capacity: int = 100) -> None:
        """Initialize an empty log.

        Args:
            capacity: Maximum number of events kept; older ones are dropped.
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._events: deque[EngineEvent] = deque(maxlen=capacity)
        self._snapshot: AudioState | None = None

    def record(self, event: EngineEvent) -> None:
        """Append an engine event."""
        self._events.append(event)

    def on_snapshot(self, state: AudioState) -> None:
        """Store the latest published snapshot (event bus listener)."""
        self._snapshot = state

    @property
    def events(self) -> list[EngineEvent]:
        """Recorded events, oldest first."""
        return list(self._events)

    @property
    def snapshot(self) -> AudioState | None:
        """Latest snapshot received, if any."""
        return self._snapshot

    def lines(self) -> list[str]:
        """Recorded events formatted one per line."""
        lines = []
        for event in self._events:
            line = f"{event.kind} {event.category.value}/{event.key}"
            if event.sound_id is not None:
                line += f" #{event.sound_id}"
            if event.error:
                line += f" ({event.error})"
            lines.append(line)
        return lines

    def to_dict(self) -> dict[str, Any]:
        """Events and latest snapshot as plain data."""
        return {
            "events": self.lines(),
            "state": self._snapshot.to_dict() if self._snapshot is not None else None,
        }

    def clear(self) -> None:
        """Drop every recorded event."""
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
