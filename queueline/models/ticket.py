"""
Ticket model with the service state machine
"""

from sqlmodel import Field, SQLModel, Relationship
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from enum import Enum
import math
import uuid

from queueline.core.exceptions import IllegalTransitionError
from queueline.models.types import UTCDateTime, utc_now

if TYPE_CHECKING:
    from queueline.models.queue import Queue


class TicketStatus(str, Enum):
    """Status of a ticket"""
    WAITING = "waiting"             # In line, holds a position
    SERVING = "serving"             # Called; at most one per queue
    COMPLETED = "completed"         # Service finished (terminal)
    CANCELLED = "cancelled"         # Left the line or was dropped (terminal)


class TicketAction(str, Enum):
    """Status-changing operations"""
    ASSIGN = "assign"
    COMPLETE = "complete"
    CANCEL = "cancel"


# (source status, action) -> target status. Pairs not listed are illegal.
TICKET_TRANSITIONS: dict[tuple[TicketStatus, TicketAction], TicketStatus] = {
    (TicketStatus.WAITING, TicketAction.ASSIGN): TicketStatus.SERVING,
    (TicketStatus.WAITING, TicketAction.CANCEL): TicketStatus.CANCELLED,
    (TicketStatus.SERVING, TicketAction.COMPLETE): TicketStatus.COMPLETED,
    (TicketStatus.SERVING, TicketAction.CANCEL): TicketStatus.CANCELLED,
}

TERMINAL_STATUSES = frozenset({TicketStatus.COMPLETED, TicketStatus.CANCELLED})


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half up"""
    return round_half_up((end - start).total_seconds() / 60)


class Ticket(SQLModel, table=True):
    """A single customer's place in a queue"""

    __tablename__ = "tickets"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    queue_id: uuid.UUID = Field(
        foreign_key="queues.id",
        index=True,
        description="Queue this ticket belongs to"
    )

    number: int = Field(description="Display number, unique per queue, never reused")
    customer_name: Optional[str] = Field(default=None, max_length=100)

    status: TicketStatus = Field(
        default=TicketStatus.WAITING,
        index=True,
        description="Current status of the ticket"
    )
    position: int = Field(
        index=True,
        description="Rank among waiting tickets; frozen once the ticket leaves waiting"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    called_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, description="When the ticket was assigned")
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, description="When service finished")
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    # Minutes from called_at to completed_at, set once on completion
    wait_time: Optional[int] = Field(default=None)

    # Relationships
    queue: Optional["Queue"] = Relationship(back_populates="tickets")

    # State machine methods
    def can_transition(self, action: TicketAction) -> tuple[bool, str]:
        """Check whether an action is legal from the current status"""
        if (self.status, action) in TICKET_TRANSITIONS:
            return True, "Can transition"
        if self.status in TERMINAL_STATUSES:
            return False, f"ticket is already {self.status.value}"
        return False, f"ticket is {self.status.value}"

    def can_move(self) -> tuple[bool, str]:
        """Only waiting tickets hold a meaningful position"""
        if self.status != TicketStatus.WAITING:
            return False, f"only waiting tickets can be moved, ticket is {self.status.value}"
        return True, "Can move"

    def _transition(self, action: TicketAction, now: datetime) -> TicketStatus:
        allowed, reason = self.can_transition(action)
        if not allowed:
            raise IllegalTransitionError(action.value, reason, ticket_id=self.id, status=self.status.value)

        previous = self.status
        self.status = TICKET_TRANSITIONS[(previous, action)]
        self.updated_at = now
        return previous

    def mark_serving(self, now: datetime) -> None:
        """waiting -> serving. Position is left as it was."""
        self._transition(TicketAction.ASSIGN, now)
        self.called_at = now

    def mark_completed(self, now: datetime) -> None:
        """serving -> completed, recording wait time exactly once"""
        self._transition(TicketAction.COMPLETE, now)
        self.completed_at = now
        if self.wait_time is None:
            self.wait_time = minutes_between(self.called_at, now) if self.called_at else 0

    def mark_cancelled(self, now: datetime) -> TicketStatus:
        """waiting|serving -> cancelled. Returns the status it left."""
        previous = self._transition(TicketAction.CANCEL, now)
        self.cancelled_at = now
        return previous

    def is_waiting(self) -> bool:
        return self.status == TicketStatus.WAITING
