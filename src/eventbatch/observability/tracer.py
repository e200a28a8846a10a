"""
Span creation for batch processor components.

Components receive a Tracer at construction instead of talking to
OpenTelemetry directly. Production code gets an OpenTelemetryTracer,
processors built with ``enable_tracing=False`` get a NullTracer, and tests
pass a MockTracer to assert on the spans a batch produced.

Example:
    >>> from eventbatch.observability import create_tracer
    >>>
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("eventbatch.processor.handle", {"eventbatch.batch.size": 10}):
    ...     pass
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind


class SpanKindEnum(Enum):
    """
    Role of a span, translated to OpenTelemetry's SpanKind.

    Values:
        INTERNAL: Work local to the processor
        PRODUCER: Handing events to a downstream sink
        CONSUMER: Handling a batch drained from the queue
    """

    INTERNAL = "internal"
    PRODUCER = "producer"
    CONSUMER = "consumer"


_OTEL_KINDS = {
    SpanKindEnum.INTERNAL: SpanKind.INTERNAL,
    SpanKindEnum.PRODUCER: SpanKind.PRODUCER,
    SpanKindEnum.CONSUMER: SpanKind.CONSUMER,
}


@runtime_checkable
class Tracer(Protocol):
    """
    What the processor needs from a tracer.

    ``span()`` returns a context manager; the value it yields is an
    OpenTelemetry Span, or None when nothing is recorded. Callers guard
    span calls with ``if span:``.
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
    ) -> AbstractContextManager[Span | None]:
        """
        Open a span around a block.

        Args:
            name: Span name, e.g. "eventbatch.processor.handle"
            attributes: Initial span attributes
            kind: Role of the span
        """
        ...

    @property
    def enabled(self) -> bool:
        """Whether spans opened by this tracer are exported."""
        ...


class NullTracer:
    """Tracer for processors running with tracing turned off."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by the global OpenTelemetry TracerProvider.

    Without an SDK provider installed the spans are non-recording, so the
    processor can always trace unconditionally.
    """

    def __init__(self, tracer_name: str) -> None:
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
    ) -> AbstractContextManager[Span | None]:
        """Start a span and make it current for the duration of the block."""
        return self._tracer.start_as_current_span(
            name,
            kind=_OTEL_KINDS.get(kind, SpanKind.INTERNAL),
            attributes=attributes or {},
        )

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    In-memory tracer for tests.

    Each opened span is appended to ``spans`` as a ``(name, attributes)``
    pair; the block receives None, like with NullTracer.

    Example:
        >>> tracer = MockTracer()
        >>> consumer = BatchConsumer(queue, adapter, config, tracer=tracer)
        >>> await consumer.consume_batch()
        >>> tracer.span_names
        ['eventbatch.processor.handle']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
    ) -> Generator[None, None, None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        """Names of the recorded spans, in opening order."""
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Pick the tracer for a component.

    Args:
        name: Instrumentation scope name, usually the module's ``__name__``
        enable_tracing: False to get a NullTracer

    Returns:
        OpenTelemetryTracer or NullTracer
    """
    if not enable_tracing:
        return NullTracer()
    return OpenTelemetryTracer(name)


__all__ = [
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "SpanKindEnum",
    "Tracer",
    "create_tracer",
]
