"""
Tests for the domain event bus
"""

import uuid
from datetime import datetime, timezone

from queueline.core.events import EventBus, QueueDeleted, TicketAdded, TicketCompleted


def make_added() -> TicketAdded:
    return TicketAdded(
        ticket_id=uuid.uuid4(),
        queue_id=uuid.uuid4(),
        number=7,
        position=3,
        customer_name="Customer 7",
    )


class TestEventBus:
    """Test subscribe / publish behaviour"""

    def test_publish_reaches_subscribers(self):
        bus = EventBus()
        received = []
        bus.subscribe("TicketAdded", received.append)

        event = make_added()
        bus.publish(event)

        assert received == [event]

    def test_other_event_types_ignored(self):
        bus = EventBus()
        received = []
        bus.subscribe("QueueDeleted", received.append)

        bus.publish(make_added())

        assert received == []

    def test_failing_handler_does_not_stop_others(self):
        """Test one broken handler never blocks the rest"""
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("TicketAdded", broken)
        bus.subscribe("TicketAdded", received.append)

        bus.publish(make_added())

        assert len(received) == 1

    def test_unsubscribe_and_clear(self):
        bus = EventBus()
        received = []
        bus.subscribe("TicketAdded", received.append)
        bus.unsubscribe("TicketAdded", received.append)
        bus.publish(make_added())

        bus.subscribe("TicketAdded", received.append)
        bus.clear_subscribers()
        bus.publish(make_added())

        assert received == []


class TestEventPayloads:
    """Test event serialization"""

    def test_ticket_added_to_dict(self):
        event = make_added()
        data = event.to_dict()

        assert data["event_type"] == "TicketAdded"
        assert data["ticket_id"] == str(event.ticket_id)
        assert data["number"] == 7
        assert data["position"] == 3
        assert data["customer_name"] == "Customer 7"

    def test_ticket_completed_to_dict(self):
        completed_at = datetime(2026, 3, 10, 9, 7, tzinfo=timezone.utc)
        event = TicketCompleted(uuid.uuid4(), uuid.uuid4(), 1, completed_at, 7)

        data = event.to_dict()

        assert data["completed_at"] == "2026-03-10T09:07:00+00:00"
        assert data["wait_time"] == 7

    def test_queue_deleted_to_dict(self):
        queue_id = uuid.uuid4()
        data = QueueDeleted(queue_id, 4).to_dict()

        assert data["queue_id"] == str(queue_id)
        assert data["deleted_ticket_count"] == 4
