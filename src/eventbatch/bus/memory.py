"""In-memory named-event emitter.

This module provides an in-memory event source for distributing business
events to registered listeners within the same process.

Suitable for wiring application call sites to batch processors in a single
service instance.
"""

import asyncio
import inspect
import logging
import threading
from collections import defaultdict
from typing import Any

from eventbatch.bus.interface import EventSource, Listener

logger = logging.getLogger(__name__)


def get_listener_name(listener: Any) -> str:
    """
    Get a descriptive name for a listener for logging and debugging.

    Args:
        listener: Any callable (bound method, function, lambda)

    Returns:
        String name for the listener
    """
    qualname = getattr(listener, "__qualname__", None)
    if qualname:
        return str(qualname)
    return repr(listener)


class InMemoryEventEmitter(EventSource):
    """
    In-memory event emitter for named events.

    Features:
    - Thread-safe listener management
    - Synchronous listener invocation in registration order
    - Error isolation (listener failures don't stop other listeners)
    - Async listeners: returned coroutines are scheduled as background tasks
      on the running event loop and awaited by shutdown()

    Example:
        >>> emitter = InMemoryEventEmitter()
        >>> emitter.on("ADD_ITEM", lambda payload: print(payload))
        >>> emitter.emit("ADD_ITEM", {"item_id": 1})
        1

    Thread Safety:
        - on(), off() and emit() may be called from any thread
        - Async listeners require emit() to be called from the event loop thread
    """

    def __init__(self) -> None:
        """Initialize the emitter with an empty listener registry."""
        # Map of event name -> listeners in registration order
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._lock = threading.RLock()
        # Track background tasks to prevent orphaned coroutines
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._stats = {
            "events_emitted": 0,
            "listeners_invoked": 0,
            "listener_errors": 0,
            "background_tasks_created": 0,
            "background_tasks_completed": 0,
        }

    def on(self, event_name: str, listener: Listener) -> None:
        """
        Register a listener for a named event.

        Thread-safe: Can be called from any thread.

        Args:
            event_name: Name of the event to listen for
            listener: Callable receiving the event payload

        Raises:
            TypeError: If listener is not callable
        """
        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {type(listener)}")

        with self._lock:
            self._listeners[event_name].append(listener)

        logger.debug(
            f"Registered listener {get_listener_name(listener)} for {event_name}",
            extra={"listener": get_listener_name(listener), "event_name": event_name},
        )

    def off(self, event_name: str, listener: Listener) -> bool:
        """
        Remove the most recent registration of a listener.

        Thread-safe: Can be called from any thread.

        Args:
            event_name: Name of the event
            listener: The listener to remove (compared by equality, so bound
                methods of the same object match)

        Returns:
            True if the listener was found and removed, False otherwise
        """
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            for i in range(len(listeners) - 1, -1, -1):
                if listeners[i] == listener:
                    listeners.pop(i)
                    if not listeners:
                        del self._listeners[event_name]
                    logger.debug(
                        f"Removed listener {get_listener_name(listener)} from {event_name}",
                        extra={
                            "listener": get_listener_name(listener),
                            "event_name": event_name,
                        },
                    )
                    return True

        return False

    def emit(self, event_name: str, payload: Any) -> int:
        """
        Emit a named event to its listeners.

        Args:
            event_name: Name of the event
            payload: Event payload handed to every listener

        Returns:
            Number of listeners invoked
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
            self._stats["events_emitted"] += 1

        for listener in listeners:
            self._safe_invoke(listener, event_name, payload)

        return len(listeners)

    def _safe_invoke(self, listener: Listener, event_name: str, payload: Any) -> None:
        """
        Invoke one listener, catching and logging exceptions.

        Args:
            listener: The listener to invoke
            event_name: Name of the emitted event
            payload: Event payload
        """
        try:
            result = listener(payload)
        except Exception as e:
            with self._lock:
                self._stats["listener_errors"] += 1
            logger.error(
                f"Listener {get_listener_name(listener)} failed for {event_name}: {e}",
                exc_info=True,
                extra={
                    "listener": get_listener_name(listener),
                    "event_name": event_name,
                    "error": str(e),
                },
            )
            return

        with self._lock:
            self._stats["listeners_invoked"] += 1

        if inspect.isawaitable(result):
            self._schedule(result, listener, event_name)

    def _schedule(self, awaitable: Any, listener: Listener, event_name: str) -> None:
        """Run an async listener's result as a background task."""
        try:
            task = asyncio.ensure_future(awaitable, loop=asyncio.get_running_loop())
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.error(
                f"Async listener {get_listener_name(listener)} for {event_name} "
                "called outside a running event loop; result discarded",
                extra={"listener": get_listener_name(listener), "event_name": event_name},
            )
            return

        task.add_done_callback(self._on_background_task_done)
        self._background_tasks.add(task)
        with self._lock:
            self._stats["background_tasks_created"] += 1

    def _on_background_task_done(self, task: asyncio.Task[Any]) -> None:
        """Callback when a background task completes."""
        self._background_tasks.discard(task)
        with self._lock:
            self._stats["background_tasks_completed"] += 1

        if not task.cancelled():
            exc = task.exception()
            if exc:
                with self._lock:
                    self._stats["listener_errors"] += 1
                logger.error(
                    f"Async listener task failed: {exc}",
                    exc_info=exc,
                )

    def listener_count(self, event_name: str | None = None) -> int:
        """
        Get the number of registered listeners.

        Args:
            event_name: If provided, count listeners for this name only

        Returns:
            Number of registered listeners
        """
        with self._lock:
            if event_name is None:
                return sum(len(listeners) for listeners in self._listeners.values())
            return len(self._listeners.get(event_name, []))

    def event_names(self) -> list[str]:
        """
        Get the names that currently have listeners.

        Returns:
            Event names in first-registration order
        """
        with self._lock:
            return [name for name, listeners in self._listeners.items() if listeners]

    def clear_listeners(self) -> None:
        """
        Remove all listeners.

        Thread-safe: Can be called from any thread.
        """
        with self._lock:
            self._listeners.clear()

        logger.info("All event listeners cleared")

    def get_stats(self) -> dict[str, int]:
        """
        Get statistics about emitter operation.

        Returns:
            Dictionary with counts:
            - events_emitted: Total emit() calls
            - listeners_invoked: Total successful listener invocations
            - listener_errors: Total listener errors (sync and async)
            - background_tasks_created: Async listener tasks started
            - background_tasks_completed: Async listener tasks finished
        """
        with self._lock:
            return dict(self._stats)

    def get_background_task_count(self) -> int:
        """
        Get the number of currently active background tasks.

        Returns:
            Number of active background tasks
        """
        return len(self._background_tasks)

    async def shutdown(self, timeout: float = 30.0) -> None:
        """
        Wait for background tasks of async listeners to complete.

        Tasks still running after the timeout are cancelled.

        Args:
            timeout: Maximum time to wait for tasks to complete in seconds
        """
        pending = list(self._background_tasks)
        logger.info(
            f"Shutting down event emitter, waiting for {len(pending)} background task(s)"
        )

        if not pending:
            return

        _, remaining = await asyncio.wait(
            pending,
            timeout=timeout,
            return_when=asyncio.ALL_COMPLETED,
        )
        if remaining:
            logger.warning(
                f"Event emitter shutdown: {len(remaining)} task(s) did not complete within timeout",
                extra={"remaining_tasks": len(remaining)},
            )
            for task in remaining:
                task.cancel()

        logger.info("Event emitter shutdown complete")


__all__ = ["InMemoryEventEmitter", "get_listener_name"]
