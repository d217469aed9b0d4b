"""
Pydantic schemas for queues and tickets
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid

from queueline.models.ticket import TicketStatus


class QueueCreate(BaseModel):
    """Queue creation input, already trimmed"""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)


class QueueUpdate(BaseModel):
    """Partial queue update; None leaves a field unchanged"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class QueueRead(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TicketRead(BaseModel):
    id: uuid.UUID
    queue_id: uuid.UUID
    number: int
    customer_name: Optional[str] = None
    status: TicketStatus
    position: int
    created_at: datetime
    called_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    wait_time: Optional[int] = None

    class Config:
        from_attributes = True


class StatusCounts(BaseModel):
    """Ticket counts per status"""
    total: int = 0
    waiting: int = 0
    serving: int = 0
    completed: int = 0
    cancelled: int = 0


class QueueSnapshot(BaseModel):
    """A queue as an operator sees it: the line, who is at the desk, counts"""
    queue: QueueRead
    waiting: List[TicketRead]
    serving: Optional[TicketRead] = None
    statistics: StatusCounts
