"""
Subscription management for batch processors.

The subscription manager registers one listener per configured event name
on the event source. Each listener appends the payload to the processor's
queue. Subscriptions outlive the processor's batch loop: stopping the loop
does not unsubscribe, so events emitted afterwards are still buffered.
Call unsubscribe() to revoke them explicitly.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from eventbatch.exceptions import SubscriptionError
from eventbatch.processor.queue import EventQueue

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """
    Registers and revokes a processor's listeners on an event source.

    The source only needs an ``on(event_name, listener)`` method; revocation
    additionally uses ``off(event_name, listener)``.

    Example:
        >>> manager = SubscriptionManager(emitter, ("ADD_ITEM",), queue)
        >>> manager.subscribe()
        >>> emitter.emit("ADD_ITEM", {"item_id": 1})
        >>> manager.received_count
        1
        >>> manager.unsubscribe()
        1
    """

    def __init__(
        self,
        source: Any,
        event_names: Sequence[str],
        queue: EventQueue[Any],
    ) -> None:
        """
        Initialize the subscription manager.

        Args:
            source: Event source with an ``on`` method
            event_names: Names to subscribe to, in order
            queue: Queue receiving the payloads

        Raises:
            SubscriptionError: If the source has no callable ``on``
        """
        if not callable(getattr(source, "on", None)):
            raise SubscriptionError(source, "source has no on(event_name, listener) method")

        self._source = source
        self._event_names = tuple(event_names)
        self._queue = queue
        self._subscribed = False
        self._received = 0
        self._lock = threading.Lock()
        # Same object for on() and off(); some sources compare listeners by identity
        self._listener = self._enqueue

    def _enqueue(self, payload: Any) -> None:
        """Listener body: append the payload to the queue."""
        self._queue.push(payload)
        with self._lock:
            self._received += 1

    def subscribe(self) -> None:
        """
        Register the listener for every configured event name.

        Registration happens once; calling subscribe() again while
        subscribed is a no-op.
        """
        if self._subscribed:
            return

        for event_name in self._event_names:
            self._source.on(event_name, self._listener)
        self._subscribed = True

        logger.info(
            f"Subscribed to {len(self._event_names)} event(s): {', '.join(self._event_names)}",
            extra={"event_names": list(self._event_names)},
        )

    def unsubscribe(self) -> int:
        """
        Remove the listeners registered by subscribe().

        Idempotent: returns 0 when not subscribed.

        Returns:
            Number of listeners removed

        Raises:
            SubscriptionError: If the source has no callable ``off``
        """
        if not self._subscribed:
            return 0

        off = getattr(self._source, "off", None)
        if not callable(off):
            raise SubscriptionError(
                self._source, "source has no off(event_name, listener) method"
            )

        removed = 0
        for event_name in self._event_names:
            if off(event_name, self._listener) is not False:
                removed += 1
        self._subscribed = False

        logger.info(
            f"Unsubscribed from {len(self._event_names)} event(s): {', '.join(self._event_names)}",
            extra={"event_names": list(self._event_names), "removed": removed},
        )
        return removed

    @property
    def event_names(self) -> tuple[str, ...]:
        """Event names this manager subscribes to."""
        return self._event_names

    @property
    def subscribed(self) -> bool:
        """Whether the listeners are currently registered."""
        return self._subscribed

    @property
    def received_count(self) -> int:
        """Number of payloads received through the listeners."""
        with self._lock:
            return self._received


__all__ = ["SubscriptionManager"]
