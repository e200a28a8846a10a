"""Library exceptions for the eventbatch package."""


class EventBatchError(Exception):
    """Base exception for eventbatch library."""

    pass


class ProcessorStoppedError(EventBatchError):
    """Raised when starting a batch processor that has already been stopped."""

    def __init__(self, processor_name: str) -> None:
        self.processor_name = processor_name
        super().__init__(
            f"Batch processor {processor_name!r} has been stopped and cannot be restarted. "
            "Create a new processor instead."
        )


class SubscriptionError(EventBatchError):
    """Raised when a processor cannot subscribe to its event source."""

    def __init__(self, source: object, message: str) -> None:
        self.source = source
        super().__init__(f"Cannot subscribe to event source {type(source).__name__}: {message}")


__all__ = [
    "EventBatchError",
    "ProcessorStoppedError",
    "SubscriptionError",
]
