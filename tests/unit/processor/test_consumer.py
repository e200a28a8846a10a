"""
Unit tests for BatchConsumer.

Tests cover:
- One bounded batch per step, empty steps without side effects
- Overflow warnings
- Failure isolation, failure records and error callbacks
- Spans and metric snapshots
"""

import json
import logging
from typing import Any

import pytest

from eventbatch.observability import MockTracer
from eventbatch.processor.config import BatchProcessorConfig
from eventbatch.processor.consumer import MAX_RECORDED_FAILURES, BatchConsumer
from eventbatch.processor.errors import BatchErrorRegistry, BatchFailure
from eventbatch.processor.handlers import BatchHandlerAdapter
from eventbatch.processor.metrics import ProcessorMetrics
from eventbatch.processor.queue import InMemoryEventQueue
from tests.fixtures import BatchRecorder, FailingHandler, FlakyHandler

# =============================================================================
# Helpers
# =============================================================================


def make_consumer(
    handler: Any,
    batch_size: int = 3,
    items: list[Any] | None = None,
    **kwargs: Any,
) -> tuple[BatchConsumer, InMemoryEventQueue[Any]]:
    queue: InMemoryEventQueue[Any] = InMemoryEventQueue()
    for item in items or []:
        queue.push(item)
    config = BatchProcessorConfig(event_names=("ADD_ITEM", "ARCHIVE_ITEM"), batch_size=batch_size)
    metrics = kwargs.pop("metrics", ProcessorMetrics(config.name, enable_metrics=False))
    consumer = BatchConsumer(queue, BatchHandlerAdapter(handler), config, metrics=metrics, **kwargs)
    return consumer, queue


# =============================================================================
# Consumption
# =============================================================================


class TestConsumeBatch:
    """Tests for consume_batch()."""

    @pytest.mark.asyncio
    async def test_empty_queue_no_handler_call(self, caplog: pytest.LogCaptureFixture) -> None:
        recorder = BatchRecorder()
        consumer, _ = make_consumer(recorder)

        with caplog.at_level(logging.DEBUG, logger="eventbatch"):
            consumed = await consumer.consume_batch()

        assert consumed == 0
        assert recorder.call_count == 0
        assert caplog.records == []
        assert consumer.stats.batches_processed == 0

    @pytest.mark.asyncio
    async def test_fewer_than_batch_size_handed_over_at_once(self) -> None:
        recorder = BatchRecorder()
        consumer, queue = make_consumer(recorder, batch_size=10, items=["a", "b"])

        consumed = await consumer.consume_batch()

        assert consumed == 2
        assert recorder.batches == [["a", "b"]]
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_batch_takes_newest_items(self) -> None:
        recorder = BatchRecorder()
        consumer, queue = make_consumer(recorder, batch_size=3, items=["e1", "e2", "e3", "e4", "e5"])

        await consumer.consume_batch()

        assert recorder.batches == [["e3", "e4", "e5"]]
        assert queue.snapshot() == ["e1", "e2"]

    @pytest.mark.asyncio
    async def test_stats_updated_on_success(self) -> None:
        consumer, _ = make_consumer(BatchRecorder(), items=[1, 2])

        await consumer.consume_batch()
        await consumer.consume_batch()

        stats = consumer.stats
        assert stats.cycles == 2
        assert stats.batches_processed == 1
        assert stats.events_processed == 2
        assert stats.last_batch_at is not None

    @pytest.mark.asyncio
    async def test_sync_function_handler(self) -> None:
        received: list[list[int]] = []
        consumer, _ = make_consumer(received.append, items=[1])

        await consumer.consume_batch()

        assert received == [[1]]


# =============================================================================
# Overflow
# =============================================================================


class TestOverflowWarning:
    """Tests for the growing-queue advisory."""

    @pytest.mark.asyncio
    async def test_warns_when_more_than_one_batch_remains(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        recorder = BatchRecorder()
        consumer, _ = make_consumer(recorder, batch_size=3, items=list(range(10)))

        with caplog.at_level(logging.WARNING, logger="eventbatch.processor.consumer"):
            await consumer.consume_batch()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "7 events still in queue after batch processing" in warnings[0].message
        assert "grow faster than it can be processed" in warnings[0].message
        assert warnings[0].event_names == ["ADD_ITEM", "ARCHIVE_ITEM"]
        assert warnings[0].queue_size == 7
        assert consumer.stats.overflow_warnings == 1

    @pytest.mark.asyncio
    async def test_one_warning_per_overflowing_cycle(self, caplog: pytest.LogCaptureFixture) -> None:
        """With 10 items and batch 3: remainders 7, 4, 1, 0 -> warnings on the first two cycles."""
        recorder = BatchRecorder()
        consumer, _ = make_consumer(recorder, batch_size=3, items=list(range(10)))

        with caplog.at_level(logging.WARNING, logger="eventbatch.processor.consumer"):
            for _ in range(4):
                await consumer.consume_batch()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2
        assert [len(batch) for batch in recorder.batches] == [3, 3, 3, 1]
        assert sorted(recorder.items) == list(range(10))

    @pytest.mark.asyncio
    async def test_no_warning_when_remainder_equals_batch_size(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        consumer, _ = make_consumer(BatchRecorder(), batch_size=3, items=list(range(6)))

        with caplog.at_level(logging.WARNING, logger="eventbatch.processor.consumer"):
            await consumer.consume_batch()

        assert caplog.records == []


# =============================================================================
# Failures
# =============================================================================


class TestHandlerFailure:
    """Tests for failure isolation."""

    @pytest.mark.asyncio
    async def test_failure_does_not_propagate(self) -> None:
        handler = FailingHandler()
        consumer, queue = make_consumer(handler, items=[1, 2])

        consumed = await consumer.consume_batch()

        assert consumed == 2
        assert handler.batches == [[1, 2]]
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_failure_logged_with_batch_contents(self, caplog: pytest.LogCaptureFixture) -> None:
        handler = FailingHandler(RuntimeError("throttled"))
        consumer, _ = make_consumer(handler, items=[{"item_id": 1}, {"item_id": 2}])

        with caplog.at_level(logging.ERROR, logger="eventbatch.processor.consumer"):
            await consumer.consume_batch()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        record = errors[0]
        assert record.message.startswith("Failed event batch")
        assert "throttled" in record.message
        assert json.loads(record.event_batch) == [{"item_id": 1}, {"item_id": 2}]
        assert record.error_type == "RuntimeError"
        assert record.exc_info is not None

    @pytest.mark.asyncio
    async def test_failed_batch_is_not_requeued(self) -> None:
        handler = FlakyHandler(failures=1)
        consumer, queue = make_consumer(handler, items=[1, 2])

        await consumer.consume_batch()
        await consumer.consume_batch()

        assert handler.calls == 1
        assert handler.succeeded == []
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_later_cycles_unaffected(self) -> None:
        handler = FlakyHandler(failures=1)
        consumer, queue = make_consumer(handler, items=[1])

        await consumer.consume_batch()
        queue.push(2)
        await consumer.consume_batch()

        assert handler.succeeded == [[2]]
        stats = consumer.stats
        assert stats.batches_failed == 1
        assert stats.events_lost == 1
        assert stats.batches_processed == 1
        assert stats.last_failure_at is not None

    @pytest.mark.asyncio
    async def test_failure_record(self) -> None:
        consumer, _ = make_consumer(FailingHandler(ValueError("bad record")), items=["x"])

        await consumer.consume_batch()

        [failure] = consumer.failures
        assert failure.processor_name == "ADD_ITEM,ARCHIVE_ITEM"
        assert failure.event_names == ("ADD_ITEM", "ARCHIVE_ITEM")
        assert failure.batch_size == 1
        assert json.loads(failure.batch) == ["x"]
        assert failure.error_type == "ValueError"
        assert failure.error_message == "bad record"
        assert "ValueError: bad record" in failure.error_stacktrace

    @pytest.mark.asyncio
    async def test_failure_history_is_bounded(self) -> None:
        consumer, queue = make_consumer(FailingHandler(), batch_size=1)

        for i in range(MAX_RECORDED_FAILURES + 5):
            queue.push(i)
            await consumer.consume_batch()

        failures = consumer.failures
        assert len(failures) == MAX_RECORDED_FAILURES
        assert json.loads(failures[-1].batch) == [MAX_RECORDED_FAILURES + 4]

    @pytest.mark.asyncio
    async def test_handler_mutating_batch_does_not_change_report(self) -> None:
        class ClearingHandler:
            async def handle_batch(self, batch: list[Any]) -> None:
                batch.clear()
                raise RuntimeError("cleared")

        consumer, _ = make_consumer(ClearingHandler(), items=[1, 2])

        await consumer.consume_batch()

        assert consumer.failures[0].batch_size == 2
        assert json.loads(consumer.failures[0].batch) == [1, 2]

    @pytest.mark.asyncio
    async def test_callbacks_notified(self) -> None:
        registry = BatchErrorRegistry()
        async_seen: list[BatchFailure] = []
        sync_seen: list[BatchFailure] = []

        async def on_failure(failure: BatchFailure) -> None:
            async_seen.append(failure)

        registry.register(on_failure)
        registry.register_sync(sync_seen.append)
        consumer, _ = make_consumer(FailingHandler(), items=[1], error_registry=registry)

        await consumer.consume_batch()

        assert len(async_seen) == 1
        assert sync_seen == async_seen

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = BatchErrorRegistry()
        seen: list[BatchFailure] = []

        def broken(failure: BatchFailure) -> None:
            raise RuntimeError("reporter down")

        registry.register_sync(broken)
        registry.register_sync(seen.append)
        consumer, _ = make_consumer(FailingHandler(), items=[1], error_registry=registry)

        with caplog.at_level(logging.ERROR):
            await consumer.consume_batch()

        assert len(seen) == 1
        assert "reporter down" in caplog.text


# =============================================================================
# Backlog draining
# =============================================================================


class TestDrainBacklog:
    """Tests for drain_backlog()."""

    @pytest.mark.asyncio
    async def test_drains_backlog_in_full_batches(self) -> None:
        recorder = BatchRecorder()
        consumer, queue = make_consumer(recorder, batch_size=3, items=list(range(8)))

        drained = await consumer.drain_backlog()

        assert drained == 8
        assert [len(batch) for batch in recorder.batches] == [3, 3, 2]
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_drains_newest_batch_first(self) -> None:
        recorder = BatchRecorder()
        consumer, _ = make_consumer(recorder, batch_size=3, items=list(range(8)))

        await consumer.drain_backlog()

        assert recorder.batches == [[5, 6, 7], [2, 3, 4], [0, 1]]

    @pytest.mark.asyncio
    async def test_events_pushed_during_drain_do_not_displace_backlog(self) -> None:
        queue: InMemoryEventQueue[Any] = InMemoryEventQueue()
        received: list[list[Any]] = []

        async def requeue_each(batch: list[Any]) -> None:
            received.append(list(batch))
            for item in batch:
                queue.push(f"late-{item}")

        for i in range(10):
            queue.push(f"e{i}")
        config = BatchProcessorConfig(event_names=("ADD_ITEM",), batch_size=5)
        consumer = BatchConsumer(queue, BatchHandlerAdapter(requeue_each), config)

        drained = await consumer.drain_backlog()

        assert drained == 10
        assert sorted(item for batch in received for item in batch) == sorted(
            f"e{i}" for i in range(10)
        )
        assert len(queue) == 10
        assert all(item.startswith("late-") for item in queue.snapshot())

    @pytest.mark.asyncio
    async def test_empty_backlog(self) -> None:
        recorder = BatchRecorder()
        consumer, _ = make_consumer(recorder)

        assert await consumer.drain_backlog() == 0
        assert recorder.call_count == 0


# =============================================================================
# Observability
# =============================================================================


class TestConsumerObservability:
    """Tests for spans and metrics."""

    @pytest.mark.asyncio
    async def test_handler_span_recorded(self) -> None:
        tracer = MockTracer()
        consumer, _ = make_consumer(BatchRecorder(), items=[1, 2], tracer=tracer)

        await consumer.consume_batch()

        assert tracer.span_names == ["eventbatch.processor.handle"]
        _, attributes = tracer.spans[0]
        assert attributes["eventbatch.batch.size"] == 2
        assert attributes["eventbatch.processor.name"] == "ADD_ITEM,ARCHIVE_ITEM"

    @pytest.mark.asyncio
    async def test_no_span_for_empty_cycle(self) -> None:
        tracer = MockTracer()
        consumer, _ = make_consumer(BatchRecorder(), tracer=tracer)

        await consumer.consume_batch()

        assert tracer.spans == []

    @pytest.mark.asyncio
    async def test_metric_snapshot(self) -> None:
        metrics = ProcessorMetrics("exports", enable_metrics=False)
        consumer, queue = make_consumer(
            FlakyHandler(failures=1), batch_size=2, items=[1, 2], metrics=metrics
        )

        await consumer.consume_batch()
        queue.push(3)
        await consumer.consume_batch()

        snapshot = metrics.get_snapshot()
        assert snapshot.batches_failed == 1
        assert snapshot.events_lost == 2
        assert snapshot.batches_processed == 1
        assert snapshot.events_processed == 1
        assert snapshot.total_handler_time_ms >= 0
