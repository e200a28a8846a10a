"""
Shared pytest fixtures for the eventbatch library tests.

This module provides:
- Event source fixtures (emitter)
- Payload fixtures (event_factory, sample_event)
- Batch handler fixtures (recorder, failing_handler)
- OpenTelemetry metrics fixtures (metric_reader)

All fixtures are function scoped.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import pytest
import pytest_asyncio
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

import eventbatch.processor.metrics as processor_metrics
from eventbatch.bus import InMemoryEventEmitter
from eventbatch.events import BusinessEvent
from tests.fixtures import BatchRecorder, FailingHandler

# ============================================================================
# Event Source Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def emitter() -> AsyncGenerator[InMemoryEventEmitter, None]:
    """Provide an in-memory emitter, shut down after the test."""
    source = InMemoryEventEmitter()
    yield source
    await source.shutdown(timeout=1.0)


# ============================================================================
# Payload Fixtures
# ============================================================================


@pytest.fixture
def event_factory() -> Callable[..., BusinessEvent]:
    """
    Factory for creating business events.

    Example:
        def test_something(event_factory):
            event = event_factory("ADD_ITEM", item_id=1)
    """

    def _create(event_type: str = "ADD_ITEM", **data: Any) -> BusinessEvent:
        return BusinessEvent(event_type=event_type, source="tests", data=data)

    return _create


@pytest.fixture
def sample_event(event_factory: Callable[..., BusinessEvent]) -> BusinessEvent:
    """A single ADD_ITEM event."""
    return event_factory("ADD_ITEM", item_id=1, url="https://example.com")


# ============================================================================
# Handler Fixtures
# ============================================================================


@pytest.fixture
def recorder() -> BatchRecorder:
    """Async batch handler recording every batch it receives."""
    return BatchRecorder()


@pytest.fixture
def failing_handler() -> FailingHandler:
    """Batch handler that raises on every call."""
    return FailingHandler()


# ============================================================================
# Metrics Fixtures
# ============================================================================


@pytest.fixture
def metric_reader() -> Generator[InMemoryMetricReader, None, None]:
    """
    Provide an InMemoryMetricReader wired to the processor meter.

    The processor module caches its meter and the processors its queue
    gauge reports; both are reset, and the meter cache is pointed at a
    fresh SDK provider for the test.

    Yields:
        InMemoryMetricReader: Reader for inspecting collected metrics.
    """
    reader = InMemoryMetricReader()
    provider = MeterProvider(metric_readers=[reader])
    processor_metrics.reset_meter()
    processor_metrics._meter = provider.get_meter("eventbatch.processor")

    yield reader

    processor_metrics.reset_meter()
    provider.shutdown()


def collect_metric_points(reader: InMemoryMetricReader, name: str) -> list[Any]:
    """Return all data points recorded for a metric name."""
    data = reader.get_metrics_data()
    points: list[Any] = []
    if data is None:
        return points
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == name:
                    points.extend(metric.data.data_points)
    return points
