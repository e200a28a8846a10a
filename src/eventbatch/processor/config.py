"""
Configuration classes for batch processors.

This module provides:
- BatchProcessorConfig: Immutable configuration for one batch processor
- create_stream_export_config: Preset for record-stream export sinks
- create_low_latency_config: Preset for small, frequent batches
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

DEFAULT_INTERVAL = 1.0
"""Seconds between the end of one batch cycle and the start of the next."""

DEFAULT_BATCH_SIZE = 500
"""Maximum number of events handed to the handler in one batch."""


@dataclass(frozen=True)
class BatchProcessorConfig:
    """
    Configuration for a batch processor.

    Immutable after construction. Controls which events are buffered, how
    often the buffer is drained and how large each drained batch may be.

    Attributes:
        event_names: Names of the events to subscribe to, in order
        interval: Seconds to wait after each cycle before the next one
        batch_size: Maximum number of events per batch. If the handler calls
            an external service, keep this within that service's limits.
        shutdown_timeout: Max seconds stop() waits for the loop to finish
            its in-flight cycle (None = wait until it finishes)
        drain_on_stop: Whether the loop drains the backlog queued at stop
            time, in batches, before it finishes
        name: Label used in logs and metrics (defaults to the event names)

    Example:
        >>> config = BatchProcessorConfig(
        ...     event_names=("ADD_ITEM", "ARCHIVE_ITEM"),
        ...     interval=1.0,
        ...     batch_size=500,
        ... )
    """

    event_names: tuple[str, ...]
    interval: float = DEFAULT_INTERVAL
    batch_size: int = DEFAULT_BATCH_SIZE
    shutdown_timeout: float | None = None
    drain_on_stop: bool = False
    name: str = field(default="")

    def __post_init__(self) -> None:
        """Normalize and validate configuration values."""
        # Accept any iterable of names (lists from callers, dict values, ...)
        if isinstance(self.event_names, str):
            raise ValueError(
                f"event_names must be a collection of names, got the string {self.event_names!r}. "
                f"Use ({self.event_names!r},) for a single event."
            )
        names = tuple(self.event_names)
        object.__setattr__(self, "event_names", names)

        if not names:
            raise ValueError("event_names must contain at least one event name.")

        for event_name in names:
            if not isinstance(event_name, str) or not event_name:
                raise ValueError(f"event names must be non-empty strings, got {event_name!r}.")

        if len(set(names)) != len(names):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"event_names must be unique, got duplicates {duplicates}.")

        if self.interval <= 0:
            raise ValueError(
                f"interval must be positive, got {self.interval}. "
                "Use a value like 1.0 (default) seconds."
            )

        if self.batch_size < 1:
            raise ValueError(
                f"batch_size must be positive, got {self.batch_size}. "
                "Use a value like 500 (default) or the sink's per-request limit."
            )

        if self.shutdown_timeout is not None and self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive or None, got {self.shutdown_timeout}."
            )

        if not self.name:
            object.__setattr__(self, "name", ",".join(names))

    @property
    def interval_ms(self) -> float:
        """Interval in milliseconds."""
        return self.interval * 1000


def create_stream_export_config(
    event_names: Iterable[str],
    interval: float = DEFAULT_INTERVAL,
    name: str = "",
) -> BatchProcessorConfig:
    """
    Create a configuration for exporting events to a record stream.

    Uses 500-event batches, the per-request record limit of common stream
    sinks (e.g. a PutRecords call), drained once per second.

    Args:
        event_names: Event names to export
        interval: Seconds between batches (default 1.0)
        name: Processor label (defaults to the event names)

    Returns:
        BatchProcessorConfig for stream export
    """
    return BatchProcessorConfig(
        event_names=tuple(event_names),
        interval=interval,
        batch_size=500,
        name=name,
    )


def create_low_latency_config(
    event_names: Iterable[str],
    name: str = "",
) -> BatchProcessorConfig:
    """
    Create a configuration for small, frequent batches.

    Drains up to 50 events every 100 ms and flushes the backlog on stop.

    Args:
        event_names: Event names to buffer
        name: Processor label (defaults to the event names)

    Returns:
        BatchProcessorConfig for low-latency delivery
    """
    return BatchProcessorConfig(
        event_names=tuple(event_names),
        interval=0.1,
        batch_size=50,
        drain_on_stop=True,
        name=name,
    )


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_INTERVAL",
    "BatchProcessorConfig",
    "create_low_latency_config",
    "create_stream_export_config",
]
