"""
Event payload models.

The batch processor treats payloads as opaque values; any object can be
emitted and batched. BusinessEvent is the envelope used by applications
that emit business events (item saved, tags updated, ...) for export to
analytics and stream sinks.
"""

from eventbatch.events.base import BusinessEvent

__all__ = ["BusinessEvent"]
