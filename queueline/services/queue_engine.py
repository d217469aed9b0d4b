"""
Ordering & state engine

Owns all position arithmetic and status-transition legality for tickets.

Every mutation runs inside the queue's critical section: the in-process
queue lock plus a row lock on the queue, then read -> compute -> write and a
single commit. A failure anywhere rolls the whole unit back, so a position
swap or a gap shift is never half-applied.

Rules:
- waiting tickets of a queue hold positions 1..N with no gaps or duplicates
- at most one ticket per queue is serving
- a ticket leaving the waiting set (assign, cancel, delete) keeps its own
  frozen position and the waiting tickets above it shift down by one
- ticket numbers come from the queue's counter and are never reused
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional
import uuid

import structlog
from sqlmodel import Session

from queueline.core.config import get_settings
from queueline.core.events import (
    EventBus,
    QueueDeleted,
    TicketAdded,
    TicketCalled,
    TicketCancelled,
    TicketCompleted,
    TicketDeleted,
    TicketMoved,
    event_bus,
)
from queueline.core.exceptions import (
    IllegalTransitionError,
    InvalidDataError,
    InvariantViolationError,
    QueueNotFoundError,
    QueueServiceError,
    ServingConflictError,
)
from queueline.core.locks import QueueLockRegistry
from queueline.models.queue import Queue
from queueline.models.ticket import Ticket, TicketAction, TicketStatus
from queueline.models.types import utc_now
from queueline.services.ticket_store import TicketStore

logger = structlog.get_logger(__name__)
settings = get_settings()

# Shared by every engine in the process; sessions are per caller, locks are not
queue_locks = QueueLockRegistry(timeout=settings.QUEUE_LOCK_TIMEOUT_SECONDS)


@dataclass
class MoveResult:
    """Outcome of a move. ``moved`` is False for the no-neighbour no-op."""

    ticket: Ticket
    moved: bool
    displaced: Optional[Ticket] = None


@dataclass
class DeletedTicket:
    ticket_id: uuid.UUID
    queue_id: uuid.UUID
    number: int
    shifted: List[Ticket] = field(default_factory=list)


class QueueEngine:
    """Applies ticket intents to one session"""

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = utc_now,
        locks: Optional[QueueLockRegistry] = None,
        bus: Optional[EventBus] = None,
    ):
        self.session = session
        self.store = TicketStore(session)
        self.clock = clock
        self.locks = locks or queue_locks
        self.bus = bus or event_bus

    # -------------------- critical section --------------------

    @contextmanager
    def _queue_section(self, queue_id: uuid.UUID, operation: str):
        """Serialize an operation on one queue and commit it as one unit"""
        queue = None
        try:
            with self.locks.hold(queue_id):
                # Drop anything read before the lock was taken
                self.session.expire_all()
                try:
                    queue = self.store.lock_queue(queue_id)
                    yield queue
                    self.session.commit()
                except QueueServiceError:
                    self.session.rollback()
                    raise
                except Exception as e:
                    self.session.rollback()
                    logger.error(f"Error during {operation} on queue {queue_id}: {e}", exc_info=True)
                    raise
        except QueueNotFoundError:
            # No lock is kept for ids that name no queue
            if queue is None:
                self.locks.discard(queue_id)
            raise

    def _queue_of(self, ticket_id: uuid.UUID) -> uuid.UUID:
        return self.store.get_ticket(ticket_id).queue_id

    def _neighbour(self, queue_id: uuid.UUID, position: int) -> Optional[Ticket]:
        tickets = self.store.waiting_at_position(queue_id, position)
        if len(tickets) > 1:
            logger.error(
                f"Queue {queue_id} has {len(tickets)} waiting tickets at position {position}"
            )
            raise InvariantViolationError(queue_id, f"duplicate waiting position {position}")
        return tickets[0] if tickets else None

    def _close_gap(self, queue_id: uuid.UUID, position: int, now: datetime) -> List[Ticket]:
        """Shift waiting tickets above a vacated position down by one"""
        shifted = self.store.waiting_after(queue_id, position)
        for ticket in shifted:
            ticket.position -= 1
            ticket.updated_at = now
        return shifted

    # -------------------- intents --------------------

    def add_ticket(
        self,
        queue_id: uuid.UUID,
        customer_name: Optional[str] = None,
        owner_id: Optional[uuid.UUID] = None,
    ) -> Ticket:
        """Append a new waiting ticket to the end of the line"""
        if owner_id is not None:
            self.store.get_queue(queue_id, owner_id)

        label = customer_name.strip() if customer_name else ""
        if len(label) > settings.CUSTOMER_NAME_MAX_LENGTH:
            raise InvalidDataError(
                "customer_name",
                f"must be at most {settings.CUSTOMER_NAME_MAX_LENGTH} characters",
            )

        now = self.clock()
        with self._queue_section(queue_id, "add") as queue:
            if not queue.is_active:
                raise IllegalTransitionError("add ticket", f"queue {queue.name!r} is inactive")

            number = queue.issue_ticket_number()
            position = self.store.max_waiting_position(queue_id) + 1
            ticket = self.store.add_ticket(Ticket(
                queue_id=queue_id,
                number=number,
                customer_name=label or f"Customer {number}",
                status=TicketStatus.WAITING,
                position=position,
                created_at=now,
            ))

        logger.info(f"Ticket #{ticket.number} added to queue {queue_id} at position {ticket.position}")
        self.bus.publish(TicketAdded(
            ticket_id=ticket.id,
            queue_id=queue_id,
            number=ticket.number,
            position=ticket.position,
            customer_name=ticket.customer_name,
        ))
        return ticket

    def move_up(self, ticket_id: uuid.UUID) -> MoveResult:
        return self._move(ticket_id, -1)

    def move_down(self, ticket_id: uuid.UUID) -> MoveResult:
        return self._move(ticket_id, +1)

    def _move(self, ticket_id: uuid.UUID, step: int) -> MoveResult:
        action = "move up" if step < 0 else "move down"
        queue_id = self._queue_of(ticket_id)
        now = self.clock()

        with self._queue_section(queue_id, action):
            ticket = self.store.get_ticket(ticket_id)
            allowed, reason = ticket.can_move()
            if not allowed:
                raise IllegalTransitionError(action, reason, ticket_id=ticket.id, status=ticket.status.value)
            if step < 0 and ticket.position <= 1:
                raise IllegalTransitionError(
                    action, "ticket is already at the top position",
                    ticket_id=ticket.id, status=ticket.status.value,
                )

            old_position = ticket.position
            neighbour = self._neighbour(queue_id, old_position + step)
            if neighbour is None:
                if step > 0:
                    raise IllegalTransitionError(
                        action, "ticket is already at the bottom position",
                        ticket_id=ticket.id, status=ticket.status.value,
                    )
                # Nothing holds the slot above; leave the ticket where it is
                result = MoveResult(ticket=ticket, moved=False)
            else:
                ticket.position, neighbour.position = neighbour.position, ticket.position
                ticket.updated_at = now
                neighbour.updated_at = now
                result = MoveResult(ticket=ticket, moved=True, displaced=neighbour)

        if not result.moved:
            logger.warning(
                f"No waiting ticket at position {old_position + step} in queue {queue_id}; "
                f"ticket {ticket_id} left at position {old_position}"
            )
            return result

        logger.info(f"Ticket #{ticket.number} moved from {old_position} to {ticket.position} in queue {queue_id}")
        self.bus.publish(TicketMoved(
            ticket_id=ticket.id,
            queue_id=queue_id,
            number=ticket.number,
            old_position=old_position,
            new_position=ticket.position,
            displaced_ticket_id=result.displaced.id,
        ))
        return result

    def assign(self, ticket_id: uuid.UUID) -> Ticket:
        """Call a waiting ticket for service"""
        queue_id = self._queue_of(ticket_id)
        now = self.clock()

        with self._queue_section(queue_id, "assign"):
            ticket = self.store.get_ticket(ticket_id)
            allowed, reason = ticket.can_transition(TicketAction.ASSIGN)
            if not allowed:
                raise IllegalTransitionError("assign", reason, ticket_id=ticket.id, status=ticket.status.value)

            serving = self.store.serving_tickets(queue_id)
            if len(serving) > 1:
                logger.error(f"Queue {queue_id} has {len(serving)} serving tickets")
                raise InvariantViolationError(queue_id, f"{len(serving)} tickets are serving")
            if serving:
                raise ServingConflictError(serving[0])

            vacated = ticket.position
            ticket.mark_serving(now)
            self._close_gap(queue_id, vacated, now)

        logger.info(f"Ticket #{ticket.number} called in queue {queue_id}")
        self.bus.publish(TicketCalled(
            ticket_id=ticket.id,
            queue_id=queue_id,
            number=ticket.number,
            called_at=ticket.called_at,
        ))
        return ticket

    def complete(self, ticket_id: uuid.UUID) -> Ticket:
        """Finish serving a ticket and record its wait time"""
        queue_id = self._queue_of(ticket_id)
        now = self.clock()

        with self._queue_section(queue_id, "complete"):
            ticket = self.store.get_ticket(ticket_id)
            ticket.mark_completed(now)

        logger.info(f"Ticket #{ticket.number} completed in queue {queue_id}, wait {ticket.wait_time} min")
        self.bus.publish(TicketCompleted(
            ticket_id=ticket.id,
            queue_id=queue_id,
            number=ticket.number,
            completed_at=ticket.completed_at,
            wait_time=ticket.wait_time,
        ))
        return ticket

    def cancel(self, ticket_id: uuid.UUID) -> Ticket:
        queue_id = self._queue_of(ticket_id)
        now = self.clock()

        with self._queue_section(queue_id, "cancel"):
            ticket = self.store.get_ticket(ticket_id)
            vacated = ticket.position
            previous = ticket.mark_cancelled(now)
            if previous == TicketStatus.WAITING:
                self._close_gap(queue_id, vacated, now)

        logger.info(f"Ticket #{ticket.number} cancelled in queue {queue_id} (was {previous.value})")
        self.bus.publish(TicketCancelled(
            ticket_id=ticket.id,
            queue_id=queue_id,
            number=ticket.number,
            previous_status=previous.value,
        ))
        return ticket

    def delete_ticket(self, ticket_id: uuid.UUID) -> DeletedTicket:
        """Remove a ticket in any status, closing the gap if it was waiting"""
        queue_id = self._queue_of(ticket_id)
        now = self.clock()

        with self._queue_section(queue_id, "delete ticket"):
            ticket = self.store.get_ticket(ticket_id)
            was_waiting = ticket.is_waiting()
            vacated = ticket.position
            deleted = DeletedTicket(ticket_id=ticket.id, queue_id=queue_id, number=ticket.number)

            self.store.delete_ticket(ticket)
            if was_waiting:
                deleted.shifted = self._close_gap(queue_id, vacated, now)

        logger.info(
            f"Ticket #{deleted.number} deleted from queue {queue_id}, "
            f"{len(deleted.shifted)} waiting tickets shifted"
        )
        self.bus.publish(TicketDeleted(
            ticket_id=deleted.ticket_id,
            queue_id=queue_id,
            number=deleted.number,
            shifted_ticket_ids=[t.id for t in deleted.shifted],
        ))
        return deleted

    def delete_queue(self, queue_id: uuid.UUID, owner_id: Optional[uuid.UUID] = None) -> uuid.UUID:
        """Delete a queue with all of its tickets as one unit.

        Tickets left behind by an earlier partial deletion are purged only by
        owner-agnostic (operator) calls; with ``owner_id`` given, a missing
        queue row is QueueNotFoundError because ownership can no longer be
        checked.
        """
        try:
            with self.locks.hold(queue_id):
                self.session.expire_all()
                try:
                    queue = self.session.get(Queue, queue_id)
                    if queue is None:
                        if owner_id is not None:
                            raise QueueNotFoundError(queue_id)
                        removed = self.store.purge_orphan_tickets(queue_id)
                        self.session.commit()
                        if not removed:
                            raise QueueNotFoundError(queue_id)
                    else:
                        self.store.get_queue(queue_id, owner_id)
                        removed = self.store.delete_queue(queue)
                        self.session.commit()
                except QueueServiceError:
                    self.session.rollback()
                    raise
                except Exception as e:
                    self.session.rollback()
                    logger.error(f"Error deleting queue {queue_id}: {e}", exc_info=True)
                    raise
        except QueueNotFoundError:
            self.locks.discard(queue_id)
            raise
        self.locks.discard(queue_id)

        logger.info(f"Queue {queue_id} deleted with {removed} tickets")
        self.bus.publish(QueueDeleted(queue_id=queue_id, deleted_ticket_count=removed))
        return queue_id
