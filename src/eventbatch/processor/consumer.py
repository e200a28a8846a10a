"""
Batch consumption step of the batch processor.

Each scheduler cycle calls BatchConsumer.consume_batch() once. The consumer
drains one bounded batch from the queue, hands it to the handler and
isolates handler failures: a failed batch is logged with its contents,
recorded and reported to the registered callbacks, then dropped. Failures
never reach the scheduler loop, so one lost batch cannot affect any other.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from opentelemetry.trace import Status, StatusCode

from eventbatch.observability import (
    ATTR_BATCH_LIMIT,
    ATTR_BATCH_SIZE,
    ATTR_ERROR_TYPE,
    ATTR_HANDLER_NAME,
    ATTR_HANDLER_SUCCESS,
    ATTR_PROCESSOR_NAME,
    ATTR_QUEUE_OVERFLOW,
    ATTR_QUEUE_REMAINING,
    NullTracer,
    SpanKindEnum,
    Tracer,
)
from eventbatch.processor.config import BatchProcessorConfig
from eventbatch.processor.errors import BatchErrorRegistry, BatchFailure, ProcessorStats
from eventbatch.processor.handlers import BatchHandlerAdapter
from eventbatch.processor.metrics import ProcessorMetrics
from eventbatch.processor.queue import EventQueue
from eventbatch.serialization import serialize_batch

logger = logging.getLogger(__name__)

OVERFLOW_MESSAGE = (
    "{remaining} events still in queue after batch processing. Ensure the processing "
    "interval is small enough so the queue doesn't grow faster than it can be processed."
)

MAX_RECORDED_FAILURES = 100


class BatchConsumer:
    """
    Drains one batch per call and hands it to the batch handler.

    Example:
        >>> consumer = BatchConsumer(queue, BatchHandlerAdapter(export), config)
        >>> consumed = await consumer.consume_batch()
    """

    def __init__(
        self,
        queue: EventQueue[Any],
        handler: BatchHandlerAdapter,
        config: BatchProcessorConfig,
        *,
        tracer: Tracer | None = None,
        metrics: ProcessorMetrics | None = None,
        error_registry: BatchErrorRegistry | None = None,
    ) -> None:
        """
        Initialize the consumer.

        Args:
            queue: Queue to drain
            handler: Normalized batch handler
            config: Processor configuration (batch size, names)
            tracer: Tracer for handler spans (default NullTracer)
            metrics: Metrics recorder (default: metrics disabled)
            error_registry: Callbacks notified of failed batches
        """
        self._queue = queue
        self._handler = handler
        self._config = config
        self._tracer = tracer or NullTracer()
        self._metrics = metrics or ProcessorMetrics(config.name, enable_metrics=False)
        self._errors = error_registry or BatchErrorRegistry()
        self._stats = ProcessorStats()
        self._failures: deque[BatchFailure] = deque(maxlen=MAX_RECORDED_FAILURES)

    async def consume_batch(self) -> int:
        """
        Run one consumption step.

        Returns:
            Number of events drained (0 when the queue was empty)
        """
        self._stats.cycles += 1
        batch_size = self._config.batch_size

        batch = self._queue.drain(batch_size)
        if not batch:
            return 0

        remaining = len(self._queue)
        overflow = remaining > batch_size
        if overflow:
            self._report_overflow(remaining)

        return await self._process(batch, remaining, overflow)

    async def drain_backlog(self) -> int:
        """
        Hand every event queued right now to the handler, in batches.

        The backlog is taken from the queue in one step, so events pushed
        while it is being handled (even by the handler itself) stay queued
        and cannot displace it. Batches are cut newest first, matching the
        order consume_batch() would have used.

        Returns:
            Number of events handed to the handler
        """
        backlog_size = len(self._queue)
        if backlog_size == 0:
            return 0
        backlog = self._queue.drain(backlog_size)

        batch_size = self._config.batch_size
        handled = 0
        for end in range(len(backlog), 0, -batch_size):
            chunk = backlog[max(0, end - batch_size) : end]
            handled += await self._process(chunk, len(self._queue) + end - len(chunk), False)
        return handled

    async def _process(self, batch: list[Any], remaining: int, overflow: bool) -> int:
        """Run the handler on one drained batch inside a span; never raises."""
        with self._tracer.span(
            "eventbatch.processor.handle",
            {
                ATTR_PROCESSOR_NAME: self._config.name,
                ATTR_HANDLER_NAME: self._handler.name,
                ATTR_BATCH_SIZE: len(batch),
                ATTR_BATCH_LIMIT: self._config.batch_size,
                ATTR_QUEUE_REMAINING: remaining,
                ATTR_QUEUE_OVERFLOW: overflow,
            },
            kind=SpanKindEnum.CONSUMER,
        ) as span:
            # The handler may mutate its list; failure reports need the drained contents
            drained = list(batch)
            try:
                with self._metrics.time_handler() as timer:
                    await self._handler.handle_batch(batch)
            except Exception as e:
                if span:
                    span.set_attribute(ATTR_HANDLER_SUCCESS, False)
                    span.set_attribute(ATTR_ERROR_TYPE, type(e).__name__)
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                await self._handle_failure(drained, e, timer.duration_ms)
            else:
                if span:
                    span.set_attribute(ATTR_HANDLER_SUCCESS, True)
                self._stats.record_success(len(drained))
                self._metrics.record_batch_processed(len(drained), timer.duration_ms)
                logger.debug(
                    f"Handler {self._handler.name} processed {len(drained)} event(s)",
                    extra={
                        "processor": self._config.name,
                        "handler": self._handler.name,
                        "batch_size": len(drained),
                        "queue_size": remaining,
                        "duration_ms": timer.duration_ms,
                    },
                )

        return len(drained)

    def _report_overflow(self, remaining: int) -> None:
        """Log the advisory for a queue that is not being emptied fast enough."""
        self._stats.overflow_warnings += 1
        self._metrics.record_overflow(remaining)
        logger.warning(
            OVERFLOW_MESSAGE.format(remaining=remaining),
            extra={
                "processor": self._config.name,
                "event_names": list(self._config.event_names),
                "queue_size": remaining,
                "batch_size": self._config.batch_size,
            },
        )

    async def _handle_failure(
        self,
        batch: list[Any],
        error: Exception,
        duration_ms: float,
    ) -> None:
        """
        Record, log and report a failed batch. Never raises.

        Args:
            batch: The drained batch contents
            error: Exception raised by the handler
            duration_ms: Handler time until the failure
        """
        serialized = serialize_batch(batch)
        failure = BatchFailure.from_exception(
            error,
            processor_name=self._config.name,
            event_names=self._config.event_names,
            batch_size=len(batch),
            batch=serialized,
        )

        self._stats.record_failure(len(batch))
        self._metrics.record_batch_failed(len(batch), failure.error_type, duration_ms)
        self._failures.append(failure)

        logger.error(
            f"Failed event batch of {len(batch)} event(s) in {self._config.name}: {error}",
            exc_info=error,
            extra={
                "processor": self._config.name,
                "handler": self._handler.name,
                "event_names": list(self._config.event_names),
                "event_batch": serialized,
                "batch_size": len(batch),
                "error": str(error),
                "error_type": failure.error_type,
            },
        )

        await self._errors.notify(failure)

    @property
    def stats(self) -> ProcessorStats:
        """Live statistics for this consumer."""
        return self._stats

    @property
    def failures(self) -> list[BatchFailure]:
        """Most recent failures, oldest first."""
        return list(self._failures)

    @property
    def error_registry(self) -> BatchErrorRegistry:
        """Callbacks notified of failed batches."""
        return self._errors

    @property
    def handler(self) -> BatchHandlerAdapter:
        """The normalized batch handler."""
        return self._handler


__all__ = [
    "MAX_RECORDED_FAILURES",
    "OVERFLOW_MESSAGE",
    "BatchConsumer",
]
