"""
Failure tracking for batch processors.

A batch whose handler raises is lost: it is not retried or re-queued.
This module records what was lost so it can be recovered by hand:
- BatchFailure: Detailed record of one failed batch
- ProcessorStats: Counters describing processor activity
- BatchErrorRegistry: Callbacks notified of every failure (alerting,
  error reporting services)
"""

import logging
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchFailure:
    """
    Detailed information about a failed batch.

    Attributes:
        processor_name: Name of the processor that drained the batch
        event_names: Event names the processor subscribes to
        batch_size: Number of events in the lost batch
        batch: Serialized batch contents (JSON array)
        error_type: Exception class name
        error_message: Exception message
        error_stacktrace: Formatted traceback
        timestamp: When the failure was recorded (UTC)
    """

    processor_name: str
    event_names: tuple[str, ...]
    batch_size: int
    batch: str
    error_type: str
    error_message: str
    error_stacktrace: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        *,
        processor_name: str,
        event_names: tuple[str, ...],
        batch_size: int,
        batch: str,
    ) -> "BatchFailure":
        """
        Build a failure record from a caught exception.

        Args:
            error: The exception raised by the handler
            processor_name: Name of the processor
            event_names: Event names the processor subscribes to
            batch_size: Number of events in the batch
            batch: Serialized batch contents

        Returns:
            BatchFailure describing the error
        """
        return cls(
            processor_name=processor_name,
            event_names=event_names,
            batch_size=batch_size,
            batch=batch,
            error_type=type(error).__name__,
            error_message=str(error),
            error_stacktrace="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "processor_name": self.processor_name,
            "event_names": list(self.event_names),
            "batch_size": self.batch_size,
            "batch": self.batch,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "error_stacktrace": self.error_stacktrace,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ProcessorStats:
    """
    Counters describing batch processor activity.

    Attributes:
        cycles: Scheduler cycles run
        batches_processed: Batches the handler completed
        batches_failed: Batches whose handler raised
        events_processed: Events in completed batches
        events_lost: Events in failed batches
        overflow_warnings: Cycles that left more than one batch queued
        last_batch_at: When the last batch was handed to the handler
        last_failure_at: When the last batch failed
    """

    cycles: int = 0
    batches_processed: int = 0
    batches_failed: int = 0
    events_processed: int = 0
    events_lost: int = 0
    overflow_warnings: int = 0
    last_batch_at: datetime | None = None
    last_failure_at: datetime | None = None

    def record_success(self, batch_size: int) -> None:
        """Record a batch the handler completed."""
        self.batches_processed += 1
        self.events_processed += batch_size
        self.last_batch_at = datetime.now(UTC)

    def record_failure(self, batch_size: int) -> None:
        """Record a batch whose handler raised."""
        now = datetime.now(UTC)
        self.batches_failed += 1
        self.events_lost += batch_size
        self.last_batch_at = now
        self.last_failure_at = now

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "cycles": self.cycles,
            "batches_processed": self.batches_processed,
            "batches_failed": self.batches_failed,
            "events_processed": self.events_processed,
            "events_lost": self.events_lost,
            "overflow_warnings": self.overflow_warnings,
            "last_batch_at": self.last_batch_at.isoformat() if self.last_batch_at else None,
            "last_failure_at": (
                self.last_failure_at.isoformat() if self.last_failure_at else None
            ),
        }


# Type alias for error callbacks
FailureCallback = Callable[[BatchFailure], Awaitable[None]]
"""Async callback invoked when a batch fails."""

SyncFailureCallback = Callable[[BatchFailure], None]
"""Sync callback invoked when a batch fails."""


class BatchErrorRegistry:
    """
    Registry for batch failure callbacks.

    Callbacks are the hook for error reporting services. A failing callback
    is logged and never prevents the other callbacks from running.

    Example:
        >>> registry = BatchErrorRegistry()
        >>> async def report(failure: BatchFailure) -> None:
        ...     await error_service.capture(failure.error_message)
        >>> registry.register(report)
    """

    def __init__(self) -> None:
        self._callbacks: list[FailureCallback] = []
        self._sync_callbacks: list[SyncFailureCallback] = []

    def register(self, callback: FailureCallback) -> None:
        """
        Register an async callback for all failures.

        Args:
            callback: Async function to call on failure
        """
        self._callbacks.append(callback)

    def register_sync(self, callback: SyncFailureCallback) -> None:
        """
        Register a synchronous callback for all failures.

        Args:
            callback: Sync function to call on failure
        """
        self._sync_callbacks.append(callback)

    async def notify(self, failure: BatchFailure) -> None:
        """
        Notify all registered callbacks about a failure.

        Sync callbacks run first, then async callbacks, each in
        registration order.

        Args:
            failure: The failure to broadcast
        """
        for sync_cb in self._sync_callbacks:
            try:
                sync_cb(failure)
            except Exception as e:
                logger.error(
                    f"Error in sync batch failure callback: {e}",
                    exc_info=True,
                    extra={
                        "callback": getattr(sync_cb, "__name__", repr(sync_cb)),
                        "processor": failure.processor_name,
                    },
                )

        for async_cb in self._callbacks:
            try:
                await async_cb(failure)
            except Exception as e:
                logger.error(
                    f"Error in batch failure callback: {e}",
                    exc_info=True,
                    extra={
                        "callback": getattr(async_cb, "__name__", repr(async_cb)),
                        "processor": failure.processor_name,
                    },
                )

    @property
    def callback_count(self) -> int:
        """Number of registered callbacks (sync and async)."""
        return len(self._callbacks) + len(self._sync_callbacks)

    def clear(self) -> None:
        """Remove all registered callbacks."""
        self._callbacks.clear()
        self._sync_callbacks.clear()


__all__ = [
    "BatchErrorRegistry",
    "BatchFailure",
    "FailureCallback",
    "ProcessorStats",
    "SyncFailureCallback",
]
