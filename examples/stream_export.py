"""
Stream Export Example

This example demonstrates exporting business events in batches:
- Wiring an EventBatchProcessor to an InMemoryEventEmitter
- A batch handler with a per-request record limit
- Failure callbacks for lost batches
- Stopping with drain_on_stop to flush the backlog

Run with: python examples/stream_export.py
"""

import asyncio
import logging
import random

from eventbatch import (
    BatchFailure,
    BusinessEvent,
    EventBatchProcessor,
    InMemoryEventEmitter,
)

# =============================================================================
# Downstream sink
# =============================================================================


class RecordStream:
    """Stand-in for a record stream accepting up to 500 records per call."""

    MAX_RECORDS = 500

    def __init__(self, failure_rate: float = 0.2) -> None:
        self.failure_rate = failure_rate
        self.delivered = 0

    async def put_records(self, records: list[dict]) -> None:
        if len(records) > self.MAX_RECORDS:
            raise ValueError(f"{len(records)} records exceed the limit of {self.MAX_RECORDS}")
        await asyncio.sleep(0.05)
        if random.random() < self.failure_rate:
            raise ConnectionError("ProvisionedThroughputExceeded")
        self.delivered += len(records)


class StreamExporter:
    """Batch handler sending events to the record stream."""

    def __init__(self, stream: RecordStream) -> None:
        self.stream = stream

    async def handle_batch(self, batch: list[BusinessEvent]) -> None:
        await self.stream.put_records([event.to_dict() for event in batch])


# =============================================================================
# Main
# =============================================================================


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Stream Export Example")
    print("=" * 60)

    emitter = InMemoryEventEmitter()
    stream = RecordStream()

    processor = EventBatchProcessor(
        emitter,
        ["ADD_ITEM", "ARCHIVE_ITEM"],
        StreamExporter(stream),
        interval=0.2,
        batch_size=500,
        drain_on_stop=True,
        name="unified-events",
    )

    lost: list[BatchFailure] = []
    processor.on_batch_failed_sync(lost.append)

    print("\n1. Emitting a burst of 1200 events...")
    for i in range(1200):
        event_type = random.choice(["ADD_ITEM", "ARCHIVE_ITEM"])
        emitter.emit(
            event_type,
            BusinessEvent(event_type=event_type, source="example", data={"item_id": i}),
        )

    print("\n2. Letting the processor drain for one second...")
    await asyncio.sleep(1.0)

    print("\n3. Stopping (the backlog is flushed first)...")
    await processor.stop()
    await emitter.shutdown()

    stats = processor.stats
    print("\n4. Results:")
    print(f"   Delivered: {stream.delivered}")
    print(f"   Batches processed: {stats.batches_processed}")
    print(f"   Batches failed: {stats.batches_failed} ({stats.events_lost} events lost)")
    print(f"   Overflow warnings: {stats.overflow_warnings}")
    for failure in lost:
        print(f"   Lost batch of {failure.batch_size}: {failure.error_message}")

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
