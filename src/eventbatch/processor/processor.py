"""
Batch event processor.

EventBatchProcessor decouples event producers from a slow or unreliable
downstream sink. Given an event source, event names and a batch handler,
it subscribes to the events, buffers their payloads, and every ``interval``
seconds hands up to ``batch_size`` of them to the handler.

Keep the arrival rate below what the processor can drain
(``batch_size / interval`` events per second); a growing queue is reported
with a warning on every cycle that leaves more than one batch behind.

Example:
    >>> emitter = InMemoryEventEmitter()
    >>>
    >>> async def export(batch: list[BusinessEvent]) -> None:
    ...     await stream.put_records([event.to_dict() for event in batch])
    >>>
    >>> processor = EventBatchProcessor(
    ...     emitter,
    ...     ["ADD_ITEM", "ARCHIVE_ITEM"],
    ...     export,
    ...     interval=1.0,
    ...     batch_size=500,
    ... )
    >>> emitter.emit("ADD_ITEM", BusinessEvent(event_type="ADD_ITEM"))
    >>> ...
    >>> await processor.stop()
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Iterable
from types import TracebackType
from typing import Any, Generic, TypeVar

from eventbatch.exceptions import ProcessorStoppedError
from eventbatch.observability import Tracer, create_tracer
from eventbatch.processor.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INTERVAL,
    BatchProcessorConfig,
)
from eventbatch.processor.consumer import BatchConsumer
from eventbatch.processor.errors import (
    BatchErrorRegistry,
    BatchFailure,
    FailureCallback,
    ProcessorStats,
    SyncFailureCallback,
)
from eventbatch.processor.handlers import BatchHandlerAdapter
from eventbatch.processor.metrics import ProcessorMetrics
from eventbatch.processor.queue import EventQueue, InMemoryEventQueue
from eventbatch.processor.scheduler import BatchScheduler
from eventbatch.processor.subscription import SubscriptionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventBatchProcessor(Generic[T]):
    """
    Buffers named events and drains them to a handler in bounded batches.

    Construction subscribes to every event name and, with ``auto_start``
    (the default), starts the batch loop on the running event loop. The
    first cycle runs at the loop's next scheduling opportunity, so the
    constructor never blocks.

    Units:
        ``interval`` is in seconds (float, default 1.0). A value of 1000 means
        a pause of about 17 minutes, not one second; config.interval_ms gives
        the millisecond value.

    Guarantees:
    - At most one batch is being handled at any time
    - Each queued event is handed to the handler at most once
    - A failing handler never stops the loop; its batch is logged and lost
    - Batches take the newest queued events first (see EventQueue.drain)

    Lifecycle:
    - stop() requests the loop to finish and waits for its in-flight cycle
    - A stopped processor cannot be restarted
    - Subscriptions outlive stop(); call unsubscribe() to revoke them

    Example:
        >>> async with EventBatchProcessor(emitter, ["ADD_ITEM"], export) as processor:
        ...     emitter.emit("ADD_ITEM", {"item_id": 1})
        ...     await asyncio.sleep(1.5)
        >>> processor.stats.events_processed
        1
    """

    def __init__(
        self,
        source: Any,
        event_names: Iterable[str],
        handler: Any,
        interval: float = DEFAULT_INTERVAL,
        batch_size: int = DEFAULT_BATCH_SIZE,
        *,
        shutdown_timeout: float | None = None,
        drain_on_stop: bool = False,
        name: str = "",
        queue: EventQueue[T] | None = None,
        auto_start: bool = True,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
        enable_metrics: bool = True,
    ) -> None:
        """
        Initialize the processor.

        Args:
            source: Event source with ``on(event_name, listener)``
            event_names: Event names to buffer
            handler: Async function or object with ``handle_batch`` receiving
                a list of payloads
            interval: Seconds between the end of one cycle and the next
                (default 1.0)
            batch_size: Maximum payloads per handler call (default 500)
            shutdown_timeout: Default max seconds stop() waits (None = no limit)
            drain_on_stop: Whether to flush the queued backlog after stop
            name: Label for logs and metrics (defaults to the event names)
            queue: Queue implementation (default unbounded InMemoryEventQueue)
            auto_start: Start the batch loop immediately. Requires a running
                event loop; pass False to call start() later.
            tracer: Optional custom Tracer instance
            enable_tracing: Emit OpenTelemetry spans (ignored if tracer given)
            enable_metrics: Record OpenTelemetry metrics

        Raises:
            ValueError: If the configuration is invalid
            TypeError: If handler is neither callable nor has handle_batch()
            SubscriptionError: If source has no ``on`` method
            RuntimeError: If auto_start is set and no event loop is running
        """
        config = BatchProcessorConfig(
            event_names=tuple(event_names),
            interval=interval,
            batch_size=batch_size,
            shutdown_timeout=shutdown_timeout,
            drain_on_stop=drain_on_stop,
            name=name,
        )
        self._init(
            source,
            handler,
            config,
            queue=queue,
            auto_start=auto_start,
            tracer=tracer,
            enable_tracing=enable_tracing,
            enable_metrics=enable_metrics,
        )

    @classmethod
    def from_config(
        cls,
        source: Any,
        handler: Any,
        config: BatchProcessorConfig,
        *,
        queue: EventQueue[T] | None = None,
        auto_start: bool = True,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
        enable_metrics: bool = True,
    ) -> EventBatchProcessor[T]:
        """
        Create a processor from a prepared configuration.

        Args:
            source: Event source with ``on(event_name, listener)``
            handler: Batch handler
            config: Processor configuration
            queue: Queue implementation (default unbounded InMemoryEventQueue)
            auto_start: Start the batch loop immediately
            tracer: Optional custom Tracer instance
            enable_tracing: Emit OpenTelemetry spans
            enable_metrics: Record OpenTelemetry metrics

        Returns:
            New EventBatchProcessor

        Example:
            >>> config = create_stream_export_config(["ADD_ITEM", "ARCHIVE_ITEM"])
            >>> processor = EventBatchProcessor.from_config(emitter, export, config)
        """
        processor = cls.__new__(cls)
        processor._init(
            source,
            handler,
            config,
            queue=queue,
            auto_start=auto_start,
            tracer=tracer,
            enable_tracing=enable_tracing,
            enable_metrics=enable_metrics,
        )
        return processor

    def _init(
        self,
        source: Any,
        handler: Any,
        config: BatchProcessorConfig,
        *,
        queue: EventQueue[T] | None,
        auto_start: bool,
        tracer: Tracer | None,
        enable_tracing: bool,
        enable_metrics: bool,
    ) -> None:
        """Wire the components together."""
        if auto_start:
            try:
                asyncio.get_running_loop()
            except RuntimeError as e:
                raise RuntimeError(
                    "EventBatchProcessor with auto_start=True must be created inside a "
                    "running event loop. Pass auto_start=False and call start() from "
                    "async code instead."
                ) from e

        self._config = config
        self._queue: EventQueue[T] = queue if queue is not None else InMemoryEventQueue()
        self._subscriptions = SubscriptionManager(source, config.event_names, self._queue)
        self._handler = BatchHandlerAdapter(handler)
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._metrics = ProcessorMetrics(
            config.name,
            enable_metrics=enable_metrics,
            queue_size=self._queue.__len__,
        )
        self._consumer = BatchConsumer(
            self._queue,
            self._handler,
            config,
            tracer=self._tracer,
            metrics=self._metrics,
            error_registry=BatchErrorRegistry(),
        )
        self._scheduler = BatchScheduler(
            self._consumer.consume_batch,
            config.interval,
            name=config.name,
            on_stop=self._consumer.drain_backlog if config.drain_on_stop else None,
        )
        self._stopped = False
        self._stop_logged = False

        self._subscriptions.subscribe()

        if auto_start:
            self.start()

    def start(self) -> None:
        """
        Start the batch loop.

        A no-op if the loop is already running.

        Raises:
            ProcessorStoppedError: If the processor has been stopped
            RuntimeError: If called without a running event loop
        """
        if self._stopped:
            raise ProcessorStoppedError(self._config.name)
        if self._scheduler.started:
            return

        self._scheduler.start()
        logger.info(
            f"Batch processor {self._config.name} started",
            extra={
                "processor": self._config.name,
                "event_names": list(self._config.event_names),
                "handler": self._handler.name,
                "interval": self._config.interval,
                "batch_size": self._config.batch_size,
            },
        )

    async def stop(self, timeout: float | None = None) -> None:
        """
        Stop the batch loop and wait for its in-flight cycle to finish.

        Sets the stop flag, then waits for the loop's completion. No handler
        call starts after the loop has observed the flag (unless
        ``drain_on_stop`` flushes the backlog). A handler call already in
        progress is never interrupted: if it outlasts the timeout, a warning
        is logged and stop() returns while the loop finishes in the
        background.

        Idempotent and safe to call concurrently. Called from within the
        batch handler, it only sets the flag.

        Args:
            timeout: Max seconds to wait; defaults to config.shutdown_timeout
        """
        self._stopped = True
        self._metrics.release_queue()

        if not self._scheduler.started:
            return

        self._scheduler.request_stop()

        # The loop cannot wait for itself
        if asyncio.current_task() is self._scheduler.task:
            return

        wait_timeout = timeout if timeout is not None else self._config.shutdown_timeout
        finished = await self._scheduler.wait_stopped(wait_timeout)

        if not finished:
            logger.warning(
                f"Batch processor {self._config.name} did not finish its in-flight batch "
                f"within {wait_timeout}s; it will stop once the handler returns",
                extra={
                    "processor": self._config.name,
                    "timeout": wait_timeout,
                    "queue_size": len(self._queue),
                },
            )
            return

        if not self._stop_logged:
            self._stop_logged = True
            logger.info(
                f"Batch processor {self._config.name} stopped",
                extra={
                    "processor": self._config.name,
                    "queue_size": len(self._queue),
                    **self._consumer.stats.to_dict(),
                },
            )

    def unsubscribe(self) -> int:
        """
        Revoke the processor's listeners on the event source.

        Events emitted afterwards are no longer buffered. Idempotent.

        Returns:
            Number of listeners removed
        """
        return self._subscriptions.unsubscribe()

    def on_batch_failed(self, callback: FailureCallback) -> None:
        """
        Register an async callback invoked for every failed batch.

        Args:
            callback: Async function receiving the BatchFailure

        Example:
            >>> async def report(failure: BatchFailure) -> None:
            ...     await alerts.send(failure.error_message)
            >>> processor.on_batch_failed(report)
        """
        self._consumer.error_registry.register(callback)

    def on_batch_failed_sync(self, callback: SyncFailureCallback) -> None:
        """
        Register a sync callback invoked for every failed batch.

        Args:
            callback: Function receiving the BatchFailure
        """
        self._consumer.error_registry.register_sync(callback)

    async def __aenter__(self) -> EventBatchProcessor[T]:
        if not self._stopped:
            self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    @property
    def config(self) -> BatchProcessorConfig:
        """The processor configuration."""
        return self._config

    @property
    def name(self) -> str:
        """Processor label used in logs and metrics."""
        return self._config.name

    @property
    def event_names(self) -> tuple[str, ...]:
        """Event names the processor subscribes to."""
        return self._config.event_names

    @property
    def interval(self) -> float:
        """Seconds between cycles."""
        return self._config.interval

    @property
    def batch_size(self) -> int:
        """Maximum payloads per batch."""
        return self._config.batch_size

    @property
    def queue(self) -> EventQueue[T]:
        """The processor's queue."""
        return self._queue

    @property
    def queue_size(self) -> int:
        """Number of payloads waiting to be drained."""
        return len(self._queue)

    @property
    def handler_name(self) -> str:
        """Descriptive name of the batch handler."""
        return self._handler.name

    @property
    def is_running(self) -> bool:
        """Whether the batch loop is running."""
        return self._scheduler.is_running

    @property
    def is_stopped(self) -> bool:
        """Whether stop() has been called."""
        return self._stopped

    @property
    def subscribed(self) -> bool:
        """Whether the listeners are registered on the event source."""
        return self._subscriptions.subscribed

    @property
    def received_count(self) -> int:
        """Payloads received from the event source."""
        return self._subscriptions.received_count

    @property
    def stats(self) -> ProcessorStats:
        """Copy of the processing statistics."""
        return dataclasses.replace(self._consumer.stats)

    @property
    def failures(self) -> list[BatchFailure]:
        """Most recent failed batches, oldest first."""
        return self._consumer.failures

    @property
    def metrics(self) -> ProcessorMetrics:
        """The processor's metrics recorder."""
        return self._metrics

    def __repr__(self) -> str:
        state = "stopped" if self._stopped else ("running" if self.is_running else "idle")
        return (
            f"EventBatchProcessor(name={self._config.name!r}, state={state}, "
            f"queue_size={len(self._queue)})"
        )


__all__ = ["EventBatchProcessor"]
