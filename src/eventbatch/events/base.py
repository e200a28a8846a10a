"""
Base model for business event payloads.

Business events are immutable records of user-facing actions, emitted by
application call sites and buffered by batch processors on their way to a
downstream sink.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class BusinessEvent(BaseModel):
    """
    Envelope for a business event payload.

    Attributes:
        event_id: Unique identifier for this event instance
        event_type: Name the event is emitted under (e.g. 'ADD_ITEM')
        occurred_at: When the event occurred (UTC timestamp)
        version: Schema version of the event envelope
        source: Name of the service that produced the event
        user_id: User who triggered the event, if any
        data: Event-specific payload

    Example:
        >>> event = BusinessEvent(
        ...     event_type="ADD_ITEM",
        ...     source="list-api",
        ...     user_id="42",
        ...     data={"item_id": 7},
        ... )
        >>> emitter.emit(event.event_type, event)
    """

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier",
    )
    event_type: str = Field(
        ...,
        min_length=1,
        description="Name the event is emitted under",
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When event occurred (UTC)",
    )
    version: str = Field(
        default="1.0.0",
        description="Envelope schema version",
    )
    source: str = Field(
        default="",
        description="Service that produced the event",
    )
    user_id: str | None = Field(
        default=None,
        description="User that triggered this event",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific payload",
    )

    def __str__(self) -> str:
        """String representation of event."""
        return f"{self.event_type}(event_id={self.event_id}, source={self.source!r})"

    @property
    def timestamp(self) -> int:
        """Occurrence time as whole seconds since the epoch."""
        return int(self.occurred_at.timestamp())

    def with_data(self, **kwargs: Any) -> Self:
        """
        Create a copy of this event with additional payload entries.

        Args:
            **kwargs: Entries to merge into ``data``

        Returns:
            New event instance with merged data
        """
        return self.model_copy(update={"data": {**self.data, **kwargs}})

    def to_dict(self) -> dict[str, Any]:
        """
        Convert event to a JSON-compatible dictionary.

        Returns:
            Dictionary representation with UUIDs and datetimes as strings
        """
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Create event from dictionary.

        Args:
            data: Dictionary with event fields

        Returns:
            New event instance

        Raises:
            pydantic.ValidationError: If data doesn't match the model
        """
        return cls.model_validate(data)


__all__ = ["BusinessEvent"]
