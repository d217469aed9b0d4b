"""
Ticket store - query helpers over a SQLModel session

The engine never builds SQL itself; everything it reads or bulk-writes goes
through this class so the position and serving queries live in one place.
"""

from datetime import datetime
from typing import List, Optional, Sequence
import uuid

from sqlalchemy import delete, func
from sqlmodel import Session, col, select

from queueline.core.exceptions import (
    AccessDeniedError,
    QueueNotFoundError,
    TicketNotFoundError,
)
from queueline.models.queue import Queue
from queueline.models.ticket import Ticket, TicketStatus


class TicketStore:
    """Queue and ticket persistence for one session"""

    def __init__(self, session: Session):
        self.session = session

    # -------------------- queues --------------------

    def get_queue(self, queue_id: uuid.UUID, owner_id: Optional[uuid.UUID] = None) -> Queue:
        queue = self.session.get(Queue, queue_id)
        if queue is None:
            raise QueueNotFoundError(queue_id)
        if owner_id is not None and queue.owner_id != owner_id:
            raise AccessDeniedError(queue_id, owner_id)
        return queue

    def lock_queue(self, queue_id: uuid.UUID) -> Queue:
        """Re-read the queue row with a row lock (SELECT ... FOR UPDATE).

        SQLite ignores FOR UPDATE; the in-process lock covers that case.
        """
        queue = self.session.exec(
            select(Queue)
            .where(Queue.id == queue_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if queue is None:
            raise QueueNotFoundError(queue_id)
        return queue

    def find_queue_by_name(
        self,
        owner_id: uuid.UUID,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Queue]:
        statement = select(Queue).where(Queue.owner_id == owner_id, Queue.name == name)
        if exclude_id is not None:
            statement = statement.where(Queue.id != exclude_id)
        return self.session.exec(statement).first()

    def list_queues(self, owner_id: uuid.UUID) -> List[Queue]:
        return list(self.session.exec(
            select(Queue)
            .where(Queue.owner_id == owner_id)
            .order_by(col(Queue.created_at).desc())
        ).all())

    def delete_queue(self, queue: Queue) -> int:
        """Delete a queue and every ticket it owns. Returns the ticket count.

        Tickets go through the ``Queue.tickets`` delete cascade, so both
        disappear in the caller's transaction.
        """
        count = len(queue.tickets)
        self.session.delete(queue)
        return count

    def purge_orphan_tickets(self, queue_id: uuid.UUID) -> int:
        """Remove tickets left behind by a queue that no longer exists.

        Safe to repeat; a second call finds nothing to delete.
        """
        result = self.session.exec(delete(Ticket).where(Ticket.queue_id == queue_id))
        return result.rowcount or 0

    # -------------------- tickets --------------------

    def get_ticket(self, ticket_id: uuid.UUID, *, refresh: bool = False) -> Ticket:
        ticket = self.session.get(Ticket, ticket_id, populate_existing=refresh)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    def add_ticket(self, ticket: Ticket) -> Ticket:
        self.session.add(ticket)
        return ticket

    def delete_ticket(self, ticket: Ticket) -> None:
        self.session.delete(ticket)

    def list_tickets(
        self,
        queue_id: uuid.UUID,
        status: Optional[TicketStatus] = None,
    ) -> List[Ticket]:
        statement = select(Ticket).where(Ticket.queue_id == queue_id)
        if status is not None:
            statement = statement.where(Ticket.status == status)
        statement = statement.order_by(Ticket.position, Ticket.created_at)
        return list(self.session.exec(statement).all())

    def waiting_tickets(self, queue_id: uuid.UUID) -> List[Ticket]:
        """Waiting tickets of a queue ordered by position"""
        return list(self.session.exec(
            select(Ticket)
            .where(Ticket.queue_id == queue_id, Ticket.status == TicketStatus.WAITING)
            .order_by(Ticket.position)
        ).all())

    def waiting_at_position(self, queue_id: uuid.UUID, position: int) -> List[Ticket]:
        """All waiting tickets holding a position; more than one means corruption"""
        return list(self.session.exec(
            select(Ticket).where(
                Ticket.queue_id == queue_id,
                Ticket.status == TicketStatus.WAITING,
                Ticket.position == position,
            )
        ).all())

    def waiting_after(self, queue_id: uuid.UUID, position: int) -> List[Ticket]:
        return list(self.session.exec(
            select(Ticket)
            .where(
                Ticket.queue_id == queue_id,
                Ticket.status == TicketStatus.WAITING,
                Ticket.position > position,
            )
            .order_by(Ticket.position)
        ).all())

    def serving_tickets(self, queue_id: uuid.UUID) -> List[Ticket]:
        return list(self.session.exec(
            select(Ticket).where(
                Ticket.queue_id == queue_id,
                Ticket.status == TicketStatus.SERVING,
            )
        ).all())

    def max_waiting_position(self, queue_id: uuid.UUID) -> int:
        value = self.session.exec(
            select(func.max(Ticket.position)).where(
                Ticket.queue_id == queue_id,
                Ticket.status == TicketStatus.WAITING,
            )
        ).one()
        return value or 0

    def tickets_created_since(self, queue_id: uuid.UUID, since: datetime) -> List[Ticket]:
        return list(self.session.exec(
            select(Ticket)
            .where(Ticket.queue_id == queue_id, Ticket.created_at >= since)
            .order_by(Ticket.created_at)
        ).all())

    def tickets_for_queues(self, queue_ids: Sequence[uuid.UUID]) -> List[Ticket]:
        if not queue_ids:
            return []
        return list(self.session.exec(
            select(Ticket).where(col(Ticket.queue_id).in_(queue_ids))
        ).all())
