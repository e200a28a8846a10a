"""
Event source interface definitions.

This module contains the EventSource abstract base class for named-event
emitters. Application call sites emit business events by name; batch
processors register listeners for the names they buffer.

The event source decouples event producers from consumers: emitting never
waits on what the listeners do with the payload.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

# Listeners are invoked synchronously with the emitted payload. A listener
# may return an awaitable, which the source is free to schedule.
Listener = Callable[[Any], Any]


class EventSource(ABC):
    """
    Abstract named-event source.

    Implementations must make listener registration thread-safe. Emission
    invokes the listeners registered for the name in registration order.

    Example:
        >>> source = InMemoryEventEmitter()
        >>> source.on("ADD_ITEM", queue.push)
        >>> source.emit("ADD_ITEM", {"item_id": 1})
        1
    """

    @abstractmethod
    def on(self, event_name: str, listener: Listener) -> None:
        """
        Register a listener for a named event.

        The same listener may be registered more than once; it is then
        invoked once per registration.

        Args:
            event_name: Name of the event to listen for
            listener: Callable receiving the event payload
        """
        pass

    @abstractmethod
    def off(self, event_name: str, listener: Listener) -> bool:
        """
        Remove one registration of a listener for a named event.

        Args:
            event_name: Name of the event
            listener: The listener to remove

        Returns:
            True if a registration was found and removed, False otherwise
        """
        pass

    @abstractmethod
    def emit(self, event_name: str, payload: Any) -> int:
        """
        Emit a named event to its listeners.

        Listener failures are isolated: a failing listener never prevents
        the remaining listeners from receiving the payload, and never
        propagates to the emitting call site.

        Args:
            event_name: Name of the event
            payload: Event payload handed to every listener

        Returns:
            Number of listeners invoked
        """
        pass


__all__ = [
    "EventSource",
    "Listener",
]
