"""
Event queues buffering payloads between producers and the batch loop.

This module provides:
- EventQueue: Abstract queue interface used by the batch consumer
- InMemoryEventQueue: Unbounded queue (default)
- BoundedEventQueue: Capacity-limited queue with a drop policy
- OverflowPolicy: What a bounded queue does when full

Drain order:
    drain() takes the NEWEST items: the tail of the queue, kept in push
    order within the batch. With [e1, e2, e3, e4, e5] queued, drain(3)
    returns [e3, e4, e5] and leaves [e1, e2]. Older items are only reached
    once the producers slow down.

Example:
    >>> queue = InMemoryEventQueue()
    >>> for item in ["e1", "e2", "e3", "e4", "e5"]:
    ...     queue.push(item)
    >>> queue.drain(3)
    ['e3', 'e4', 'e5']
    >>> len(queue)
    2
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

# A full queue logs its first drop, then one line per this many drops
DROP_LOG_EVERY = 1000

T = TypeVar("T")


class EventQueue(ABC, Generic[T]):
    """
    Abstract queue of buffered event payloads.

    Implementations must make push() safe to call while drain() runs,
    including from other threads: no item may be lost or returned twice.
    """

    @abstractmethod
    def push(self, item: T) -> None:
        """
        Append an item to the tail of the queue.

        Never raises and never blocks.

        Args:
            item: Event payload
        """
        pass

    @abstractmethod
    def drain(self, max_count: int) -> list[T]:
        """
        Atomically remove and return up to max_count items from the tail.

        Args:
            max_count: Maximum number of items to remove

        Returns:
            The removed items in push order, or an empty list

        Raises:
            ValueError: If max_count < 1
        """
        pass

    @abstractmethod
    def __len__(self) -> int:
        """Current number of queued items."""
        pass

    def snapshot(self) -> list[T]:
        """
        Get a copy of the queued items in push order.

        Intended for debugging and tests; does not remove anything.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support snapshots")


class InMemoryEventQueue(EventQueue[T]):
    """
    Unbounded in-memory event queue.

    Growth is a symptom (the handler cannot keep up), not an error: pushes
    are always accepted. The batch consumer reports sustained growth.

    Thread Safety:
        push(), drain() and len() are guarded by one lock.
    """

    def __init__(self) -> None:
        self._items: list[T] = []
        self._lock = threading.Lock()

    def push(self, item: T) -> None:
        with self._lock:
            self._items.append(item)

    def drain(self, max_count: int) -> list[T]:
        if max_count < 1:
            raise ValueError(f"max_count must be >= 1, got {max_count}")

        with self._lock:
            if not self._items:
                return []
            batch = self._items[-max_count:]
            del self._items[-max_count:]
        return batch

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def snapshot(self) -> list[T]:
        with self._lock:
            return list(self._items)

    def __repr__(self) -> str:
        return f"InMemoryEventQueue(size={len(self)})"


class OverflowPolicy(Enum):
    """
    What a bounded queue does with a push when it is full.

    Attributes:
        DROP_OLDEST: Evict the item at the head to admit the new one
        DROP_NEWEST: Discard the incoming item
    """

    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"


class BoundedEventQueue(InMemoryEventQueue[T]):
    """
    Capacity-limited event queue.

    Keeps at most max_size items. push() still never raises: when full,
    one item is dropped according to the overflow policy and counted in
    dropped_count. The first drop is logged, then every DROP_LOG_EVERY-th,
    so a saturated queue does not flood the log.

    Example:
        >>> queue = BoundedEventQueue(max_size=2, overflow_policy=OverflowPolicy.DROP_OLDEST)
        >>> for item in ["e1", "e2", "e3"]:
        ...     queue.push(item)
        >>> queue.snapshot()
        ['e2', 'e3']
        >>> queue.dropped_count
        1
    """

    def __init__(
        self,
        max_size: int,
        overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
    ) -> None:
        """
        Initialize the bounded queue.

        Args:
            max_size: Maximum number of queued items
            overflow_policy: Which item to drop when full

        Raises:
            ValueError: If max_size < 1
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        super().__init__()
        self.max_size = max_size
        self.overflow_policy = overflow_policy
        self._dropped = 0

    def push(self, item: T) -> None:
        with self._lock:
            if len(self._items) < self.max_size:
                self._items.append(item)
                return
            if self.overflow_policy is OverflowPolicy.DROP_OLDEST:
                del self._items[0]
                self._items.append(item)
            self._dropped += 1
            dropped = self._dropped

        if dropped != 1 and dropped % DROP_LOG_EVERY != 0:
            return
        logger.warning(
            f"Event queue full ({self.max_size} items), dropped one event "
            f"({self.overflow_policy.value}, {dropped} dropped so far)",
            extra={
                "max_size": self.max_size,
                "overflow_policy": self.overflow_policy.value,
                "dropped_count": dropped,
            },
        )

    @property
    def dropped_count(self) -> int:
        """Number of items dropped because the queue was full."""
        with self._lock:
            return self._dropped

    @property
    def is_full(self) -> bool:
        """Whether the next push will drop an item."""
        with self._lock:
            return len(self._items) >= self.max_size

    def __repr__(self) -> str:
        return (
            f"BoundedEventQueue(size={len(self)}, max_size={self.max_size}, "
            f"policy={self.overflow_policy.value})"
        )


__all__ = [
    "DROP_LOG_EVERY",
    "BoundedEventQueue",
    "EventQueue",
    "InMemoryEventQueue",
    "OverflowPolicy",
]
