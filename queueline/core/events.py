"""
Domain events system

Domain events represent important business events that can be published
and subscribed to by multiple parts of the system. The queue engine
publishes one event per committed mutation.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import uuid
import structlog

logger = structlog.get_logger(__name__)


class DomainEvent:
    """Base class for domain events"""

    def __init__(self, event_id: uuid.UUID = None):
        self.event_id = event_id or uuid.uuid4()
        self.occurred_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.__class__.__name__
        }


class TicketEvent(DomainEvent):
    """Base for events about a single ticket"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.ticket_id = ticket_id
        self.queue_id = queue_id
        self.number = number

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "ticket_id": str(self.ticket_id),
            "queue_id": str(self.queue_id),
            "number": self.number
        })
        return data


class TicketAdded(TicketEvent):
    """Event fired when a customer joins a queue"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        position: int,
        customer_name: Optional[str],
        event_id: uuid.UUID = None
    ):
        super().__init__(ticket_id, queue_id, number, event_id)
        self.position = position
        self.customer_name = customer_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "position": self.position,
            "customer_name": self.customer_name
        })
        return data


class TicketMoved(TicketEvent):
    """Event fired when two waiting tickets swap positions"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        old_position: int,
        new_position: int,
        displaced_ticket_id: uuid.UUID,
        event_id: uuid.UUID = None
    ):
        super().__init__(ticket_id, queue_id, number, event_id)
        self.old_position = old_position
        self.new_position = new_position
        self.displaced_ticket_id = displaced_ticket_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "old_position": self.old_position,
            "new_position": self.new_position,
            "displaced_ticket_id": str(self.displaced_ticket_id)
        })
        return data


class TicketCalled(TicketEvent):
    """Event fired when a ticket is assigned for service"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        called_at: datetime,
        event_id: uuid.UUID = None
    ):
        super().__init__(ticket_id, queue_id, number, event_id)
        self.called_at = called_at

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["called_at"] = self.called_at.isoformat()
        return data


class TicketCompleted(TicketEvent):
    """Event fired when service of a ticket finishes"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        completed_at: datetime,
        wait_time: int,
        event_id: uuid.UUID = None
    ):
        super().__init__(ticket_id, queue_id, number, event_id)
        self.completed_at = completed_at
        self.wait_time = wait_time

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "completed_at": self.completed_at.isoformat(),
            "wait_time": self.wait_time
        })
        return data


class TicketCancelled(TicketEvent):
    """Event fired when a waiting or serving ticket is cancelled"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        previous_status: str,
        event_id: uuid.UUID = None
    ):
        super().__init__(ticket_id, queue_id, number, event_id)
        self.previous_status = previous_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["previous_status"] = self.previous_status
        return data


class TicketDeleted(TicketEvent):
    """Event fired when a ticket is removed from its queue"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        queue_id: uuid.UUID,
        number: int,
        shifted_ticket_ids: List[uuid.UUID],
        event_id: uuid.UUID = None
    ):
        super().__init__(ticket_id, queue_id, number, event_id)
        self.shifted_ticket_ids = shifted_ticket_ids

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["shifted_ticket_ids"] = [str(t) for t in self.shifted_ticket_ids]
        return data


class QueueDeleted(DomainEvent):
    """Event fired when a queue and all of its tickets are deleted"""

    def __init__(
        self,
        queue_id: uuid.UUID,
        deleted_ticket_count: int,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.queue_id = queue_id
        self.deleted_ticket_count = deleted_ticket_count

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "queue_id": str(self.queue_id),
            "deleted_ticket_count": self.deleted_ticket_count
        })
        return data


class EventBus:
    """Simple in-memory event bus for publishing domain events"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to a specific event type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to event type: {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable):
        """Unsubscribe from an event type"""
        if event_type in self._subscribers:
            self._subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed handler from event type: {event_type}")

    def publish(self, event: DomainEvent):
        """Publish an event to all subscribers"""
        event_type = event.__class__.__name__
        handlers = self._subscribers.get(event_type, [])

        if not handlers:
            logger.debug(f"No subscribers for event type: {event_type}")
            return

        logger.info(f"Publishing event {event_type}: {event.event_id}")

        # The mutation is already committed; a failing handler must not undo it
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event_type}: {e}", exc_info=True)

    def clear_subscribers(self):
        """Clear all subscribers (useful for testing)"""
        self._subscribers.clear()
        logger.debug("Cleared all event subscribers")


# Global event bus instance
event_bus = EventBus()
