"""
Queue model - a named waiting line owned by one operator
"""

from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import Optional, TYPE_CHECKING
import uuid

from queueline.models.types import UTCDateTime, utc_now

if TYPE_CHECKING:
    from queueline.models.ticket import Ticket


class Queue(SQLModel, table=True):
    """Waiting line that customers join by taking a ticket"""

    __tablename__ = "queues"
    __table_args__ = (
        # Names are unique per owner only, never globally
        UniqueConstraint("owner_id", "name", name="uq_queue_owner_name"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: uuid.UUID = Field(
        index=True,
        description="Operator who created and manages this queue"
    )

    name: str = Field(max_length=100, description="Display name, trimmed, case-sensitive")
    description: str = Field(default="", max_length=500)
    is_active: bool = Field(default=True, index=True, description="Inactive queues reject new tickets")

    # Highest ticket number ever issued; numbers are never reused
    last_ticket_number: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    tickets: list["Ticket"] = Relationship(
        back_populates="queue",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    def issue_ticket_number(self) -> int:
        """Reserve the next display number for a new ticket"""
        self.last_ticket_number += 1
        return self.last_ticket_number

    def touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or utc_now()
