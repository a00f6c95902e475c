"""Synchronous publish/subscribe bus for audio state snapshots.

Listeners are called on the publishing thread, in subscription order, with
the same snapshot object. The listener list is copied before each publish,
so subscribing or unsubscribing from inside a listener only affects later
publishes.

Typical usage example:
    from soundsync.core.event_bus import EventBus

    bus = EventBus()
    unsubscribe = bus.subscribe(lambda state: print(state.global_volume))
    bus.publish(state)
    unsubscribe()
"""

from collections.abc import Callable
from typing import Generic, TypeVar

from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class EventBus(Generic[T]):
    """Single-threaded publish/subscribe mechanism.

    Examples:
        >>> bus = EventBus()
        >>> seen = []
        >>> unsubscribe = bus.subscribe(seen.append)
        >>> bus.publish("state")
        >>> seen
        ['state']
    """

    def __init__(self) -> None:
        """Initialize an empty bus."""
        self._listeners: list[Listener[T]] = []
        self._publish_count = 0

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register a listener.

        The same callable may be subscribed more than once; each subscription
        gets its own unsubscribe function.

        Args:
            listener: Callable receiving the published value.

        Returns:
            Function that removes this subscription. Calling it twice is safe.
        """
        self._listeners.append(listener)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if not subscribed:
                return
            subscribed = False
            for idx in range(len(self._listeners) - 1, -1, -1):
                if self._listeners[idx] is listener:
                    del self._listeners[idx]
                    break

        return unsubscribe

    def publish(self, value: T) -> None:
        """Deliver a value to every currently subscribed listener.

        A listener that raises is logged and skipped; the remaining
        listeners still run.

        Args:
            value: Value handed to each listener (not copied per listener).
        """
        self._publish_count += 1
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("State listener %r failed", listener)

    @property
    def listener_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._listeners)

    @property
    def publish_count(self) -> int:
        """Number of publishes since creation."""
        return self._publish_count
