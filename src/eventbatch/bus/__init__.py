"""
Event source abstraction and in-memory implementation.

Batch processors subscribe to named events on an EventSource. Any object
with compatible ``on``/``off`` methods can be used as a source; the
InMemoryEventEmitter is provided for in-process wiring.

Example:
    >>> from eventbatch.bus import InMemoryEventEmitter
    >>>
    >>> emitter = InMemoryEventEmitter()
    >>> emitter.on("ADD_ITEM", print)
    >>> emitter.emit("ADD_ITEM", {"item_id": 1})
"""

from eventbatch.bus.interface import EventSource, Listener
from eventbatch.bus.memory import InMemoryEventEmitter, get_listener_name

__all__ = [
    "EventSource",
    "InMemoryEventEmitter",
    "Listener",
    "get_listener_name",
]
