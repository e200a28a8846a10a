"""
Unit tests for SubscriptionManager.
"""

import logging

import pytest

from eventbatch.bus import InMemoryEventEmitter
from eventbatch.exceptions import SubscriptionError
from eventbatch.processor.queue import InMemoryEventQueue
from eventbatch.processor.subscription import SubscriptionManager
from tests.fixtures import RecordingSource


class TestSubscribe:
    """Tests for listener registration."""

    def test_registers_every_name_in_order(self) -> None:
        source = RecordingSource()
        manager = SubscriptionManager(source, ("ADD_ITEM", "ARCHIVE_ITEM", "DELETE_ITEM"), InMemoryEventQueue())

        manager.subscribe()

        assert source.on_calls == ["ADD_ITEM", "ARCHIVE_ITEM", "DELETE_ITEM"]
        assert manager.subscribed

    def test_subscribe_twice_registers_once(self) -> None:
        source = RecordingSource()
        manager = SubscriptionManager(source, ("ADD_ITEM",), InMemoryEventQueue())

        manager.subscribe()
        manager.subscribe()

        assert source.on_calls == ["ADD_ITEM"]

    def test_payloads_appended_to_queue_in_arrival_order(self) -> None:
        source = RecordingSource()
        queue: InMemoryEventQueue[dict] = InMemoryEventQueue()
        manager = SubscriptionManager(source, ("ADD_ITEM", "ARCHIVE_ITEM"), queue)
        manager.subscribe()

        source.fire("ADD_ITEM", {"n": 1})
        source.fire("ARCHIVE_ITEM", {"n": 2})
        source.fire("ADD_ITEM", {"n": 3})

        assert queue.snapshot() == [{"n": 1}, {"n": 2}, {"n": 3}]
        assert manager.received_count == 3

    def test_unrelated_events_ignored(self) -> None:
        emitter = InMemoryEventEmitter()
        queue: InMemoryEventQueue[int] = InMemoryEventQueue()
        SubscriptionManager(emitter, ("ADD_ITEM",), queue).subscribe()

        emitter.emit("DELETE_ITEM", 1)

        assert len(queue) == 0

    def test_source_without_on_rejected(self) -> None:
        with pytest.raises(SubscriptionError, match="object"):
            SubscriptionManager(object(), ("ADD_ITEM",), InMemoryEventQueue())

    def test_subscribe_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        manager = SubscriptionManager(RecordingSource(), ("A", "B"), InMemoryEventQueue())

        with caplog.at_level(logging.INFO, logger="eventbatch.processor.subscription"):
            manager.subscribe()

        assert "Subscribed to 2 event(s): A, B" in caplog.text


class TestUnsubscribe:
    """Tests for revoking listeners."""

    def test_unsubscribe_removes_listeners(self) -> None:
        emitter = InMemoryEventEmitter()
        queue: InMemoryEventQueue[int] = InMemoryEventQueue()
        manager = SubscriptionManager(emitter, ("ADD_ITEM", "ARCHIVE_ITEM"), queue)
        manager.subscribe()

        removed = manager.unsubscribe()
        emitter.emit("ADD_ITEM", 1)

        assert removed == 2
        assert not manager.subscribed
        assert emitter.listener_count() == 0
        assert len(queue) == 0

    def test_unsubscribe_is_idempotent(self) -> None:
        source = RecordingSource()
        manager = SubscriptionManager(source, ("ADD_ITEM",), InMemoryEventQueue())
        manager.subscribe()

        assert manager.unsubscribe() == 1
        assert manager.unsubscribe() == 0
        assert source.off_calls == ["ADD_ITEM"]

    def test_unsubscribe_before_subscribe(self) -> None:
        manager = SubscriptionManager(RecordingSource(), ("ADD_ITEM",), InMemoryEventQueue())

        assert manager.unsubscribe() == 0

    def test_leaves_other_listeners_in_place(self) -> None:
        emitter = InMemoryEventEmitter()
        seen: list[int] = []
        emitter.on("ADD_ITEM", seen.append)
        manager = SubscriptionManager(emitter, ("ADD_ITEM",), InMemoryEventQueue())
        manager.subscribe()

        manager.unsubscribe()
        emitter.emit("ADD_ITEM", 7)

        assert seen == [7]

    def test_source_without_off_raises(self) -> None:
        class OnOnlySource:
            def on(self, event_name, listener):
                pass

        manager = SubscriptionManager(OnOnlySource(), ("ADD_ITEM",), InMemoryEventQueue())
        manager.subscribe()

        with pytest.raises(SubscriptionError, match="off"):
            manager.unsubscribe()

    def test_resubscribe_after_unsubscribe(self) -> None:
        source = RecordingSource()
        queue: InMemoryEventQueue[int] = InMemoryEventQueue()
        manager = SubscriptionManager(source, ("ADD_ITEM",), queue)
        manager.subscribe()
        manager.unsubscribe()

        manager.subscribe()
        source.fire("ADD_ITEM", 1)

        assert queue.snapshot() == [1]
