"""
Typed errors raised by the queue engine and queue management
"""

import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from queueline.models.ticket import Ticket


class QueueServiceError(Exception):
    """Base class for every business-rule error in queueline."""

    pass


class NotFoundError(QueueServiceError):
    def __init__(self, kind: str, object_id: uuid.UUID):
        self.kind = kind
        self.object_id = object_id
        super().__init__(f"{kind} {object_id} not found")


class QueueNotFoundError(NotFoundError):
    def __init__(self, queue_id: uuid.UUID):
        super().__init__("Queue", queue_id)


class TicketNotFoundError(NotFoundError):
    def __init__(self, ticket_id: uuid.UUID):
        super().__init__("Ticket", ticket_id)


class AccessDeniedError(QueueServiceError):
    def __init__(self, queue_id: uuid.UUID, owner_id: uuid.UUID):
        self.queue_id = queue_id
        self.owner_id = owner_id
        super().__init__(f"Queue {queue_id} is not owned by {owner_id}")


class IllegalTransitionError(QueueServiceError):
    """Operation is not valid for the ticket's (or queue's) current state."""

    def __init__(self, action: str, reason: str, ticket_id: Optional[uuid.UUID] = None,
                 status: Optional[str] = None):
        self.action = action
        self.reason = reason
        self.ticket_id = ticket_id
        self.status = status
        super().__init__(f"Cannot {action}: {reason}")


class ConflictError(QueueServiceError):
    pass


class ServingConflictError(ConflictError):
    """Assign attempted while another ticket of the queue is being served."""

    def __init__(self, serving_ticket: "Ticket"):
        self.serving_ticket = serving_ticket
        super().__init__(
            f"Ticket #{serving_ticket.number} ({serving_ticket.id}) is currently being served"
        )


class DuplicateQueueNameError(ConflictError):
    def __init__(self, name: str, owner_id: uuid.UUID):
        self.name = name
        self.owner_id = owner_id
        super().__init__(f"Owner {owner_id} already has a queue named {name!r}")


class InvalidDataError(QueueServiceError):
    """A queue or ticket field failed validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvariantViolationError(QueueServiceError):
    """The store holds a state the engine never produces (duplicate neighbours,
    two serving tickets). The operation is abandoned without writing."""

    def __init__(self, queue_id: uuid.UUID, detail: str):
        self.queue_id = queue_id
        self.detail = detail
        super().__init__(f"Queue {queue_id} invariant violated: {detail}")


class QueueBusyError(QueueServiceError):
    def __init__(self, queue_id: uuid.UUID, timeout: float):
        self.queue_id = queue_id
        self.timeout = timeout
        super().__init__(f"Queue {queue_id} is locked by another operation (waited {timeout}s)")
