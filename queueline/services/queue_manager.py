"""
Queue management - create, rename, (de)activate and inspect queues
"""

from datetime import datetime
from typing import Callable, List, Optional
import uuid

from pydantic import ValidationError
import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from queueline.core.exceptions import (
    DuplicateQueueNameError,
    InvalidDataError,
    InvariantViolationError,
)
from queueline.models.queue import Queue
from queueline.models.ticket import Ticket, TicketStatus
from queueline.models.types import utc_now
from queueline.schemas.queue import (
    QueueCreate,
    QueueRead,
    QueueSnapshot,
    QueueUpdate,
    StatusCounts,
    TicketRead,
)
from queueline.services.ticket_store import TicketStore

logger = structlog.get_logger(__name__)


def _validated(schema, **data):
    """Build a schema, turning pydantic errors into InvalidDataError"""
    try:
        return schema(**data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or schema.__name__
        raise InvalidDataError(field, error["msg"]) from e


def count_statuses(tickets: List[Ticket]) -> StatusCounts:
    counts = StatusCounts(total=len(tickets))
    for ticket in tickets:
        key = TicketStatus(ticket.status).value
        setattr(counts, key, getattr(counts, key) + 1)
    return counts


class QueueManager:
    """Queue CRUD for one session. Deletion lives in QueueEngine."""

    def __init__(self, session: Session, *, clock: Callable[[], datetime] = utc_now):
        self.session = session
        self.store = TicketStore(session)
        self.clock = clock

    def create_queue(self, owner_id: uuid.UUID, name: str, description: Optional[str] = None) -> Queue:
        data = _validated(
            QueueCreate,
            name=(name or "").strip(),
            description=(description or "").strip(),
        )

        if self.store.find_queue_by_name(owner_id, data.name):
            raise DuplicateQueueNameError(data.name, owner_id)

        now = self.clock()
        queue = Queue(
            owner_id=owner_id,
            name=data.name,
            description=data.description,
            created_at=now,
            updated_at=now,
        )
        try:
            self.session.add(queue)
            self.session.commit()
        except IntegrityError as e:
            # A concurrent create took the name after the check above
            self.session.rollback()
            logger.warning(f"Queue name {data.name!r} taken concurrently for owner {owner_id}")
            raise DuplicateQueueNameError(data.name, owner_id) from e
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error creating queue {data.name!r} for owner {owner_id}: {e}")
            raise
        self.session.refresh(queue)

        logger.info(f"Queue {queue.id} ({queue.name!r}) created for owner {owner_id}")
        return queue

    def update_queue(
        self,
        queue_id: uuid.UUID,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
        owner_id: Optional[uuid.UUID] = None,
    ) -> Queue:
        queue = self.store.get_queue(queue_id, owner_id)
        data = _validated(
            QueueUpdate,
            name=name.strip() if name is not None else None,
            description=description.strip() if description is not None else None,
            is_active=is_active,
        )

        if data.name is not None and data.name != queue.name:
            if self.store.find_queue_by_name(queue.owner_id, data.name, exclude_id=queue.id):
                raise DuplicateQueueNameError(data.name, queue.owner_id)
            queue.name = data.name
        if data.description is not None:
            queue.description = data.description
        if data.is_active is not None:
            queue.is_active = data.is_active
        queue.touch(self.clock())
        owner_id = queue.owner_id

        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Queue name {data.name!r} taken concurrently for owner {owner_id}")
            raise DuplicateQueueNameError(data.name, owner_id) from e
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error updating queue {queue_id}: {e}")
            raise
        self.session.refresh(queue)

        logger.info(f"Queue {queue.id} updated (active={queue.is_active})")
        return queue

    def list_queues(self, owner_id: uuid.UUID) -> List[Queue]:
        return self.store.list_queues(owner_id)

    def list_tickets(
        self,
        queue_id: uuid.UUID,
        status: Optional[TicketStatus] = None,
        owner_id: Optional[uuid.UUID] = None,
    ) -> List[Ticket]:
        self.store.get_queue(queue_id, owner_id)
        return self.store.list_tickets(queue_id, status)

    def get_snapshot(self, queue_id: uuid.UUID, owner_id: Optional[uuid.UUID] = None) -> QueueSnapshot:
        """Waiting line in order, the serving ticket and per-status counts"""
        queue = self.store.get_queue(queue_id, owner_id)
        tickets = self.store.list_tickets(queue_id)
        waiting = self.store.waiting_tickets(queue_id)
        serving = self.store.serving_tickets(queue_id)
        if len(serving) > 1:
            logger.error(f"Queue {queue_id} has {len(serving)} serving tickets")
            raise InvariantViolationError(queue_id, f"{len(serving)} tickets are serving")

        return QueueSnapshot(
            queue=QueueRead.model_validate(queue),
            waiting=[TicketRead.model_validate(t) for t in waiting],
            serving=TicketRead.model_validate(serving[0]) if serving else None,
            statistics=count_statuses(tickets),
        )
