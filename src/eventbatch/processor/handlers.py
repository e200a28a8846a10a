"""
Batch handler normalization.

Batch handlers come in several shapes: async functions, plain functions,
and objects exposing a ``handle_batch`` method. BatchHandlerAdapter wraps
any of them behind one async ``handle_batch(batch)`` call, so the batch
consumer does not need runtime type checks.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

T_contra = TypeVar("T_contra", contravariant=True)

# Type for async batch handler functions
AsyncBatchHandlerFunc = Callable[[list[Any]], Awaitable[None]]


@runtime_checkable
class BatchHandler(Protocol[T_contra]):
    """
    Protocol for objects that consume batches of event payloads.

    Example:
        >>> class StreamExporter:
        ...     async def handle_batch(self, batch: list[BusinessEvent]) -> None:
        ...         await self.client.put_records(batch)
    """

    async def handle_batch(self, batch: list[T_contra]) -> None:
        """
        Consume one batch of payloads.

        Args:
            batch: Payloads in batch order
        """
        ...


def get_handler_name(handler: Any) -> str:
    """
    Get a descriptive name for a handler for logging and debugging.

    Args:
        handler: Any handler object (class instance, function, lambda)

    Returns:
        String name for the handler
    """
    if inspect.isfunction(handler) or inspect.ismethod(handler):
        return str(handler.__qualname__)
    if hasattr(type(handler), "handle_batch"):
        return str(handler.__class__.__name__)
    if hasattr(handler, "__name__"):
        return str(handler.__name__)
    return repr(handler)


class BatchHandlerAdapter:
    """
    Adapter that normalizes batch handlers to a consistent async interface.

    Accepts:
    - Objects with async handle_batch() method
    - Objects with sync handle_batch() method
    - Async callables
    - Sync callables (a returned awaitable is awaited)

    Example:
        >>> async def export(batch: list[dict]) -> None:
        ...     ...
        >>> adapter = BatchHandlerAdapter(export)
        >>> await adapter.handle_batch([{"item_id": 1}])

    Attributes:
        original: The original unwrapped handler
        name: Descriptive name for logging
    """

    def __init__(self, handler: Any) -> None:
        """
        Initialize the adapter with a handler.

        Args:
            handler: Object with handle_batch() method or callable

        Raises:
            TypeError: If handler has no handle_batch() method and isn't callable
        """
        self._original = handler
        self._name = get_handler_name(handler)
        self._async_handler = self._normalize(handler)

    def _normalize(self, handler: Any) -> AsyncBatchHandlerFunc:
        """
        Normalize a handler to an async callable.

        Args:
            handler: Object with handle_batch() method or callable

        Returns:
            Async function that handles batches

        Raises:
            TypeError: If handler is not valid
        """
        # Looked up on the type: mocks answer every attribute on the instance
        if hasattr(type(handler), "handle_batch"):
            target = handler.handle_batch
        elif callable(handler):
            target = handler
        else:
            raise TypeError(
                f"Batch handler must have a handle_batch() method or be callable, "
                f"got {type(handler)}"
            )

        if inspect.iscoroutinefunction(target):
            return target  # type: ignore[no-any-return]

        async def async_wrapper(batch: list[Any]) -> None:
            result = target(batch)
            # Sync wrappers around async code (e.g. functools.partial) return awaitables
            if inspect.isawaitable(result):
                await result

        return async_wrapper

    @property
    def original(self) -> Any:
        """Get the original unwrapped handler."""
        return self._original

    @property
    def name(self) -> str:
        """Get the handler's descriptive name."""
        return self._name

    async def handle_batch(self, batch: list[Any]) -> None:
        """
        Handle a batch using the normalized async handler.

        Args:
            batch: Payloads in batch order
        """
        await self._async_handler(batch)

    def __repr__(self) -> str:
        return f"BatchHandlerAdapter({self._name})"


__all__ = [
    "AsyncBatchHandlerFunc",
    "BatchHandler",
    "BatchHandlerAdapter",
    "get_handler_name",
]
