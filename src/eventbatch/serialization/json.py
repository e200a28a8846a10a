"""
JSON serialization utilities for event batches.

This module provides utilities for JSON serialization of event payloads,
which are opaque to the batch processor and may contain values that are not
natively JSON-serializable, such as UUIDs, datetimes or pydantic models.

Example:
    >>> from eventbatch.serialization import json_dumps, json_loads
    >>> from uuid import uuid4
    >>>
    >>> data = {"id": uuid4()}
    >>> json_str = json_dumps(data)
    >>> parsed = json_loads(json_str)
"""

import json
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class EventBatchJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for event payloads.

    This encoder extends the standard JSONEncoder to support serialization of:
    - pydantic models: Dumped in JSON mode
    - UUID objects: Converted to string representation
    - datetime/date objects: Converted to ISO 8601 format string
    - Decimal objects: Converted to string to keep precision
    - Enum members: Converted to their value
    - sets and frozensets: Converted to lists

    Example:
        >>> import json
        >>> from uuid import uuid4
        >>> from datetime import datetime, UTC
        >>>
        >>> data = {"id": uuid4(), "timestamp": datetime.now(UTC)}
        >>> json_str = json.dumps(data, cls=EventBatchJSONEncoder)
    """

    def default(self, obj: Any) -> Any:
        """
        Convert non-serializable objects to JSON-serializable formats.

        Args:
            obj: Object to serialize

        Returns:
            JSON-serializable representation

        Raises:
            TypeError: If object type is not supported
        """
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime | date):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, set | frozenset):
            return list(obj)
        return super().default(obj)


class _ReprFallbackEncoder(EventBatchJSONEncoder):
    """Encoder that represents unsupported objects by their repr."""

    def default(self, obj: Any) -> Any:
        try:
            return super().default(obj)
        except TypeError:
            return repr(obj)


def json_dumps(obj: Any) -> str:
    """
    Serialize object to JSON string with pydantic, UUID and datetime support.

    Convenience function that uses EventBatchJSONEncoder.

    Args:
        obj: Object to serialize

    Returns:
        JSON string representation
    """
    return json.dumps(obj, cls=EventBatchJSONEncoder)


def json_loads(s: str) -> Any:
    """
    Deserialize JSON string to Python object.

    UUID and datetime strings are NOT converted back to their original
    types - that's the application's responsibility.

    Args:
        s: JSON string to deserialize

    Returns:
        Python object representation
    """
    return json.loads(s)


def serialize_batch(batch: Sequence[Any]) -> str:
    """
    Serialize a batch of event payloads for error reports.

    Never raises: payloads are opaque, so values the encoder does not
    support are written as their ``repr``, and a batch that still cannot be
    encoded (e.g. circular references) is written as a list of item reprs.

    Args:
        batch: The payloads of one batch, in batch order

    Returns:
        JSON array string with one entry per payload
    """
    items = list(batch)
    try:
        return json.dumps(items, cls=_ReprFallbackEncoder)
    except ValueError:
        return json.dumps([repr(item) for item in items])


__all__ = [
    "EventBatchJSONEncoder",
    "json_dumps",
    "json_loads",
    "serialize_batch",
]
