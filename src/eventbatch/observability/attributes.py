"""
Standard span and metric attributes for eventbatch.

This module defines attribute constants used across eventbatch components
for consistent span naming and metrics labeling. These follow OpenTelemetry
semantic conventions where applicable.

Example:
    >>> from eventbatch.observability.attributes import (
    ...     ATTR_BATCH_SIZE,
    ...     ATTR_PROCESSOR_NAME,
    ... )
    >>>
    >>> with tracer.span(
    ...     "eventbatch.processor.handle",
    ...     {ATTR_PROCESSOR_NAME: "unified-events", ATTR_BATCH_SIZE: 500},
    ... ):
    ...     pass
"""

# =============================================================================
# Processor Attributes
# =============================================================================

ATTR_PROCESSOR_NAME = "eventbatch.processor.name"
"""Name of the batch processor (string)."""

ATTR_EVENT_NAMES = "eventbatch.event.names"
"""Event names the processor is subscribed to (comma-separated string)."""

ATTR_HANDLER_NAME = "eventbatch.handler.name"
"""Name of the batch handler being invoked (string)."""

ATTR_HANDLER_SUCCESS = "eventbatch.handler.success"
"""Whether the batch handler completed without raising (boolean)."""

# =============================================================================
# Batch Attributes
# =============================================================================

ATTR_BATCH_SIZE = "eventbatch.batch.size"
"""Number of events in the drained batch (integer)."""

ATTR_BATCH_LIMIT = "eventbatch.batch.limit"
"""Configured maximum batch size (integer)."""

ATTR_QUEUE_REMAINING = "eventbatch.queue.remaining"
"""Events left in the queue after a drain (integer)."""

ATTR_QUEUE_OVERFLOW = "eventbatch.queue.overflow"
"""Whether more than one batch was left in the queue after a drain (boolean)."""

# =============================================================================
# Error Attributes
# =============================================================================

ATTR_ERROR_TYPE = "error.type"
"""Exception class name of a failure (string, OTEL semantic)."""


__all__ = [
    "ATTR_PROCESSOR_NAME",
    "ATTR_EVENT_NAMES",
    "ATTR_HANDLER_NAME",
    "ATTR_HANDLER_SUCCESS",
    "ATTR_BATCH_SIZE",
    "ATTR_BATCH_LIMIT",
    "ATTR_QUEUE_REMAINING",
    "ATTR_QUEUE_OVERFLOW",
    "ATTR_ERROR_TYPE",
]
