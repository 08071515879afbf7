from dataclasses import FrozenInstanceError
from uuid import uuid4

import pytest

from modules.orders.events import OrderCancelled, OrderCreated
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


class _Recorder:
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


class TestDomainEvent:
    def test_event_name_is_class_name(self):
        event = OrderCreated(aggregate_id=uuid4())
        assert event.event_name == "OrderCreated"

    def test_events_are_immutable(self):
        event = OrderCreated(aggregate_id=uuid4())
        with pytest.raises(FrozenInstanceError):
            event.aggregate_id = uuid4()

    def test_payload_round_trip_keeps_identity(self):
        event = OrderCancelled(aggregate_id=uuid4())

        restored = OrderCancelled.from_payload(event.to_payload())

        assert restored == event


class TestInMemoryEventBus:
    def test_publish_routes_by_event_class(self):
        bus = InMemoryEventBus()
        created, cancelled = _Recorder(), _Recorder()
        bus.subscribe(OrderCreated, created)
        bus.subscribe(OrderCancelled, cancelled)

        event = OrderCreated(aggregate_id=uuid4())
        bus.publish(event)

        assert created.events == [event]
        assert cancelled.events == []

    def test_subscribing_twice_delivers_once(self):
        bus = InMemoryEventBus()
        recorder = _Recorder()
        bus.subscribe(OrderCreated, recorder)
        bus.subscribe(OrderCreated, recorder)

        bus.publish(OrderCreated(aggregate_id=uuid4()))

        assert len(recorder.events) == 1

    def test_publish_without_handlers_is_a_noop(self):
        InMemoryEventBus().publish(OrderCreated(aggregate_id=uuid4()))

    def test_event_class_lookup_by_name(self):
        bus = InMemoryEventBus()
        bus.subscribe(OrderCreated, _Recorder())

        assert bus.event_class_for("OrderCreated") is OrderCreated
        assert bus.event_class_for("OrderCancelled") is None
