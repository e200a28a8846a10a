"""
eventbatch - Batch event processing for asyncio applications.

This library provides:
- Batch event processor draining named events to an async handler
- Event source abstraction with an in-memory emitter
- Business event payload model with Pydantic
- Unbounded and bounded event queues
- Failure records, error callbacks and statistics
- OpenTelemetry tracing and metrics
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("eventbatch-py")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

# Event sources
from eventbatch.bus import EventSource, InMemoryEventEmitter, Listener

# Payload models
from eventbatch.events import BusinessEvent

# Exceptions
from eventbatch.exceptions import (
    EventBatchError,
    ProcessorStoppedError,
    SubscriptionError,
)

# Batch processor
from eventbatch.processor import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INTERVAL,
    BatchErrorRegistry,
    BatchFailure,
    BatchHandler,
    BatchProcessorConfig,
    BoundedEventQueue,
    EventBatchProcessor,
    EventQueue,
    InMemoryEventQueue,
    OverflowPolicy,
    ProcessorStats,
    create_low_latency_config,
    create_stream_export_config,
)

# Serialization
from eventbatch.serialization import EventBatchJSONEncoder, json_dumps, json_loads

__all__ = [
    "__version__",
    # Event sources
    "EventSource",
    "InMemoryEventEmitter",
    "Listener",
    # Payload models
    "BusinessEvent",
    # Exceptions
    "EventBatchError",
    "ProcessorStoppedError",
    "SubscriptionError",
    # Batch processor
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_INTERVAL",
    "BatchErrorRegistry",
    "BatchFailure",
    "BatchHandler",
    "BatchProcessorConfig",
    "BoundedEventQueue",
    "EventBatchProcessor",
    "EventQueue",
    "InMemoryEventQueue",
    "OverflowPolicy",
    "ProcessorStats",
    "create_low_latency_config",
    "create_stream_export_config",
    # Serialization
    "EventBatchJSONEncoder",
    "json_dumps",
    "json_loads",
]
