"""
Observability utilities for eventbatch.

This module provides the tracer abstraction and the standard attribute
definitions used by the batch processor for spans and metrics.

Example:
    >>> from eventbatch.observability import create_tracer
    >>>
    >>> class MySink:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
    ...
    ...     async def send(self, batch: list) -> None:
    ...         with self._tracer.span("my_sink.send", {"eventbatch.batch.size": len(batch)}):
    ...             ...
"""

from eventbatch.observability.attributes import (
    ATTR_BATCH_LIMIT,
    ATTR_BATCH_SIZE,
    ATTR_ERROR_TYPE,
    ATTR_EVENT_NAMES,
    ATTR_HANDLER_NAME,
    ATTR_HANDLER_SUCCESS,
    ATTR_PROCESSOR_NAME,
    ATTR_QUEUE_OVERFLOW,
    ATTR_QUEUE_REMAINING,
)
from eventbatch.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    SpanKindEnum,
    Tracer,
    create_tracer,
)

__all__ = [
    # Attributes
    "ATTR_BATCH_LIMIT",
    "ATTR_BATCH_SIZE",
    "ATTR_ERROR_TYPE",
    "ATTR_EVENT_NAMES",
    "ATTR_HANDLER_NAME",
    "ATTR_HANDLER_SUCCESS",
    "ATTR_PROCESSOR_NAME",
    "ATTR_QUEUE_OVERFLOW",
    "ATTR_QUEUE_REMAINING",
    # Tracer
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "SpanKindEnum",
    "Tracer",
    "create_tracer",
]
