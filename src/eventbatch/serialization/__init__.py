"""
Serialization utilities for eventbatch.

Batches that fail processing are written to the logs in serialized form so
that the lost events can be recovered by hand. This module provides the
JSON encoder used for those reports.

Example:
    >>> from eventbatch.serialization import json_dumps, serialize_batch
    >>> from uuid import uuid4
    >>>
    >>> json_str = json_dumps({"id": uuid4()})
    >>> report = serialize_batch([{"item_id": 1}, {"item_id": 2}])
"""

from eventbatch.serialization.json import (
    EventBatchJSONEncoder,
    json_dumps,
    json_loads,
    serialize_batch,
)

__all__ = [
    "EventBatchJSONEncoder",
    "json_dumps",
    "json_loads",
    "serialize_batch",
]
