"""
Batch event processor.

Buffers events emitted on an event source and drains them to an async
handler in bounded batches on a fixed interval.

Components:
- EventBatchProcessor: Lifecycle controller wiring everything together
- SubscriptionManager: Registers queueing listeners on the event source
- EventQueue / InMemoryEventQueue / BoundedEventQueue: Payload buffers
- BatchConsumer: Drains one batch per cycle and isolates handler failures
- BatchScheduler: Timer-driven loop running the consumer
- BatchProcessorConfig: Immutable processor configuration

Example:
    >>> from eventbatch.bus import InMemoryEventEmitter
    >>> from eventbatch.processor import EventBatchProcessor
    >>>
    >>> emitter = InMemoryEventEmitter()
    >>> processor = EventBatchProcessor(emitter, ["ADD_ITEM"], export, interval=1.0)
    >>> emitter.emit("ADD_ITEM", {"item_id": 1})
    >>> await processor.stop()
"""

from eventbatch.processor.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INTERVAL,
    BatchProcessorConfig,
    create_low_latency_config,
    create_stream_export_config,
)
from eventbatch.processor.consumer import OVERFLOW_MESSAGE, BatchConsumer
from eventbatch.processor.errors import (
    BatchErrorRegistry,
    BatchFailure,
    FailureCallback,
    ProcessorStats,
    SyncFailureCallback,
)
from eventbatch.processor.handlers import BatchHandler, BatchHandlerAdapter
from eventbatch.processor.metrics import MetricSnapshot, ProcessorMetrics
from eventbatch.processor.processor import EventBatchProcessor
from eventbatch.processor.queue import (
    BoundedEventQueue,
    EventQueue,
    InMemoryEventQueue,
    OverflowPolicy,
)
from eventbatch.processor.scheduler import BatchScheduler
from eventbatch.processor.subscription import SubscriptionManager

__all__ = [
    # Processor
    "EventBatchProcessor",
    # Config
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_INTERVAL",
    "BatchProcessorConfig",
    "create_low_latency_config",
    "create_stream_export_config",
    # Components
    "BatchConsumer",
    "BatchScheduler",
    "SubscriptionManager",
    "OVERFLOW_MESSAGE",
    # Queues
    "BoundedEventQueue",
    "EventQueue",
    "InMemoryEventQueue",
    "OverflowPolicy",
    # Handlers
    "BatchHandler",
    "BatchHandlerAdapter",
    # Errors and stats
    "BatchErrorRegistry",
    "BatchFailure",
    "FailureCallback",
    "ProcessorStats",
    "SyncFailureCallback",
    # Metrics
    "MetricSnapshot",
    "ProcessorMetrics",
]
