"""
OpenTelemetry metrics for batch processors.

Metrics are recorded through the OpenTelemetry API; they are exported only
when the application installs a MeterProvider (opentelemetry-sdk).

Example:
    >>> from eventbatch.processor.metrics import ProcessorMetrics
    >>>
    >>> metrics = ProcessorMetrics("unified-events")
    >>> metrics.record_batch_processed(500, 12.5)
    >>> metrics.record_batch_failed(500, "ThrottlingError", 30.0)
    >>> metrics.record_overflow(1200)

Metrics Exposed:
    - eventbatch.batches.processed (Counter): Batches the handler completed
    - eventbatch.batches.failed (Counter): Batches whose handler raised
    - eventbatch.events.processed (Counter): Events in completed batches
    - eventbatch.events.lost (Counter): Events in failed batches
    - eventbatch.overflow.warnings (Counter): Cycles that left a backlog
    - eventbatch.batch.duration (Histogram): Handler time in milliseconds
    - eventbatch.queue.size (Gauge): Queued events at collection time

All metrics include the 'processor' attribute for filtering by processor name.
"""

from __future__ import annotations

import time
import weakref
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import metrics
from opentelemetry.metrics import CallbackOptions, NoOpMeter, Observation

# Module-level meter instance
_meter: Any = None

# Meter the shared queue size gauge is registered on
_gauge_meter: Any = None

# Processors whose queue the gauge reports; entries vanish with their processor
_observed: weakref.WeakSet[ProcessorMetrics] = weakref.WeakSet()


def _get_meter() -> Any:
    """
    Get or create the meter instance for the processor namespace.

    Returns:
        OpenTelemetry Meter
    """
    global _meter
    if _meter is None:
        _meter = metrics.get_meter("eventbatch.processor", version="1.0.0")
    return _meter


def reset_meter() -> None:
    """
    Reset the global meter instance.

    Useful for testing to ensure fresh meter state between tests. Also
    forgets every processor registered with the queue size gauge.
    """
    global _meter, _gauge_meter
    _meter = None
    _gauge_meter = None
    _observed.clear()


def _observe_queue_sizes(options: CallbackOptions) -> Iterable[Observation]:
    """Gauge callback: one observation per live processor queue."""
    for processor_metrics in list(_observed):
        if processor_metrics.queue_size is not None:
            yield Observation(
                value=processor_metrics.queue_size(),
                attributes={"processor": processor_metrics.processor_name},
            )


def _ensure_queue_gauge(meter: Any) -> None:
    """Register the queue size gauge once per meter."""
    global _gauge_meter
    if _gauge_meter is meter:
        return
    meter.create_observable_gauge(
        name="eventbatch.queue.size",
        callbacks=[_observe_queue_sizes],
        unit="events",
        description="Events waiting in the processor queue",
    )
    _gauge_meter = meter


@dataclass
class MetricSnapshot:
    """
    Snapshot of metric values recorded by one ProcessorMetrics instance.

    Useful for testing and debugging to see what values were reported.
    """

    batches_processed: int = 0
    batches_failed: int = 0
    events_processed: int = 0
    events_lost: int = 0
    overflow_warnings: int = 0
    total_handler_time_ms: float = 0.0
    last_backlog: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "batches_processed": self.batches_processed,
            "batches_failed": self.batches_failed,
            "events_processed": self.events_processed,
            "events_lost": self.events_lost,
            "overflow_warnings": self.overflow_warnings,
            "total_handler_time_ms": self.total_handler_time_ms,
            "last_backlog": self.last_backlog,
        }


@dataclass(eq=False)
class ProcessorMetrics:
    """
    Container for batch processor metric instruments.

    All processors share one queue size gauge; it reports one observation
    per registered processor, labelled with the processor name. A processor
    is registered while it is alive and until release_queue() is called.

    Attributes:
        processor_name: Name of the processor for metric labels
        enable_metrics: Whether metrics are recorded to OpenTelemetry
        queue_size: Callable returning the current queue length, observed
            by the queue size gauge
    """

    processor_name: str
    enable_metrics: bool = True
    queue_size: Callable[[], int] | None = None

    _batches_processed_counter: Any = field(default=None, init=False, repr=False)
    _batches_failed_counter: Any = field(default=None, init=False, repr=False)
    _events_processed_counter: Any = field(default=None, init=False, repr=False)
    _events_lost_counter: Any = field(default=None, init=False, repr=False)
    _overflow_counter: Any = field(default=None, init=False, repr=False)
    _duration_histogram: Any = field(default=None, init=False, repr=False)
    _snapshot: MetricSnapshot = field(default_factory=MetricSnapshot, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize metric instruments."""
        meter = _get_meter() if self.enable_metrics else NoOpMeter("eventbatch.processor")

        self._batches_processed_counter = meter.create_counter(
            name="eventbatch.batches.processed",
            unit="batches",
            description="Total number of batches the handler completed",
        )
        self._batches_failed_counter = meter.create_counter(
            name="eventbatch.batches.failed",
            unit="batches",
            description="Total number of batches whose handler raised",
        )
        self._events_processed_counter = meter.create_counter(
            name="eventbatch.events.processed",
            unit="events",
            description="Total number of events in completed batches",
        )
        self._events_lost_counter = meter.create_counter(
            name="eventbatch.events.lost",
            unit="events",
            description="Total number of events in failed batches",
        )
        self._overflow_counter = meter.create_counter(
            name="eventbatch.overflow.warnings",
            unit="cycles",
            description="Cycles that left more than one batch in the queue",
        )
        self._duration_histogram = meter.create_histogram(
            name="eventbatch.batch.duration",
            unit="ms",
            description="Batch handler duration in milliseconds",
        )
        if self.enable_metrics and self.queue_size is not None:
            _ensure_queue_gauge(meter)
            _observed.add(self)

    @property
    def _attrs(self) -> dict[str, str]:
        return {"processor": self.processor_name}

    def release_queue(self) -> None:
        """Stop reporting this processor's queue on the queue size gauge."""
        _observed.discard(self)

    @property
    def observes_queue(self) -> bool:
        """Whether the queue size gauge reports this processor."""
        return self in _observed

    def record_batch_processed(self, batch_size: int, duration_ms: float) -> None:
        """
        Record a batch the handler completed.

        Args:
            batch_size: Number of events in the batch
            duration_ms: Handler time in milliseconds
        """
        attrs = {**self._attrs, "status": "success"}
        self._batches_processed_counter.add(1, attrs)
        self._events_processed_counter.add(batch_size, self._attrs)
        self._duration_histogram.record(duration_ms, attrs)

        self._snapshot.batches_processed += 1
        self._snapshot.events_processed += batch_size
        self._snapshot.total_handler_time_ms += duration_ms

    def record_batch_failed(self, batch_size: int, error_type: str, duration_ms: float) -> None:
        """
        Record a batch whose handler raised.

        Args:
            batch_size: Number of events lost with the batch
            error_type: Exception class name
            duration_ms: Handler time until the failure, in milliseconds
        """
        self._batches_failed_counter.add(1, {**self._attrs, "error.type": error_type})
        self._events_lost_counter.add(batch_size, self._attrs)
        self._duration_histogram.record(duration_ms, {**self._attrs, "status": "failed"})

        self._snapshot.batches_failed += 1
        self._snapshot.events_lost += batch_size
        self._snapshot.total_handler_time_ms += duration_ms

    def record_overflow(self, backlog: int) -> None:
        """
        Record a cycle that left more than one batch in the queue.

        Args:
            backlog: Events still queued after the drain
        """
        self._overflow_counter.add(1, self._attrs)
        self._snapshot.overflow_warnings += 1
        self._snapshot.last_backlog = backlog

    @contextmanager
    def time_handler(self) -> Generator[_Timer, None, None]:
        """
        Context manager for timing a handler invocation.

        Example:
            >>> with metrics.time_handler() as timer:
            ...     await handler(batch)
            >>> metrics.record_batch_processed(len(batch), timer.duration_ms)
        """
        timer = _Timer()
        try:
            yield timer
        finally:
            timer.stop()

    def get_snapshot(self) -> MetricSnapshot:
        """
        Get a copy of the values recorded so far.

        Returns:
            MetricSnapshot with accumulated values
        """
        return MetricSnapshot(**self._snapshot.to_dict())


class _Timer:
    """Monotonic timer used by time_handler()."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self._end: float | None = None

    def stop(self) -> None:
        if self._end is None:
            self._end = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        """Elapsed time in milliseconds (up to now if still running)."""
        end = self._end if self._end is not None else time.perf_counter()
        return (end - self._start) * 1000


__all__ = [
    "MetricSnapshot",
    "ProcessorMetrics",
    "reset_meter",
]
