"""Synchronous event bus for supervisor notifications."""

import logging
from collections.abc import Callable
from typing import Any

from relive.events.types import Event, EventType

logger = logging.getLogger(__name__)


class EventBus:
    """Delivers events to registered callbacks.

    Everything runs inside the host's tick, so callbacks are invoked
    synchronously in registration order. A failing callback is logged and
    never interrupts the publisher.
    """

    def __init__(self) -> None:
        self._callbacks: list[Callable[[Event], Any]] = []

    def add_callback(self, callback: Callable[[Event], Any]) -> None:
        """Add a callback to be called for every event."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[Event], Any]) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def publish(self, event: Event) -> None:
        """Publish an event to all callbacks."""
        logger.debug(f"Publishing event: {event.type.value}")

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Callback error: {e}")

    def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> Event:
        """Convenience method to create and publish an event.

        Args:
            event_type: The type of event
            data: Event payload data

        Returns:
            The created event
        """
        event = Event(type=event_type, data=data or {})
        self.publish(event)
        return event

    @property
    def callback_count(self) -> int:
        """Get the number of registered callbacks."""
        return len(self._callbacks)
