"""
Reusable test doubles for eventbatch tests.

Example:
    >>> from tests.fixtures import BatchRecorder
    >>> recorder = BatchRecorder()
    >>> processor = EventBatchProcessor(emitter, ["ADD_ITEM"], recorder)
"""

from tests.fixtures.handlers import (
    BatchRecorder,
    FailingHandler,
    FlakyHandler,
    RecordingSource,
    SlowHandler,
    wait_for,
)

__all__ = [
    "BatchRecorder",
    "FailingHandler",
    "FlakyHandler",
    "RecordingSource",
    "SlowHandler",
    "wait_for",
]
