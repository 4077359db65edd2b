"""Tests for the in-process event bus and the event wire codec."""

import json

import pytest
from pydantic import ValidationError

from liveboard.adapters.events.local import LocalEventBus
from liveboard.schemas import events
from liveboard.schemas.events import Ping, parse_event, serialize_event, sse_frame
from liveboard.schemas.questions import Question


class TestLocalEventBus:
    def test_fans_out_to_every_subscriber(self, bus: LocalEventBus):
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        bus.publish(events.deleted("q1"))

        assert first == second == [events.deleted("q1")]

    def test_failing_subscriber_does_not_affect_others(self, bus: LocalEventBus):
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        bus.publish(events.updated("q1", 2))

        assert received == [events.updated("q1", 2)]
        assert bus._dispatch(events.updated("q1", 3)) == 1

    def test_unsubscribe_stops_delivery(self, bus: LocalEventBus):
        received = []
        bus.subscribe(received.append)
        bus.unsubscribe(received.append)
        bus.unsubscribe(received.append)

        bus.publish(events.deleted("q1"))

        assert received == []
        assert bus.subscriber_count == 0

    def test_publish_without_subscribers(self, bus: LocalEventBus):
        bus.publish(events.deleted("q1"))

    def test_subscriber_can_unsubscribe_during_dispatch(self, bus: LocalEventBus):
        received = []

        def once(event):
            received.append(event)
            bus.unsubscribe(once)

        bus.subscribe(once)
        bus.publish(events.deleted("a"))
        bus.publish(events.deleted("b"))

        assert received == [events.deleted("a")]


class TestEventCodec:
    def test_created_event_uses_camel_case_payload(self):
        question = Question(id="q1", text="What is caching?", likes=0, created_at=1700000000000)

        body = json.loads(serialize_event(events.created(question)))

        assert body == {
            "type": "new-question",
            "payload": {"id": "q1", "text": "What is caching?", "likes": 0, "createdAt": 1700000000000},
        }

    @pytest.mark.parametrize(
        "event",
        [
            events.created(Question(id="q1", text="t", likes=1, created_at=5)),
            events.updated("q1", 7),
            events.deleted("q1"),
            Ping(t=123),
        ],
    )
    def test_parse_restores_the_event(self, event):
        assert parse_event(serialize_event(event)) == event

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_event('{"type": "question-archive", "payload": {"id": "q1"}}')

    def test_sse_frame_format(self):
        assert sse_frame(Ping(t=1)) == 'data: {"type":"ping","t":1}\n\n'
