"""
Table models
"""

from queueline.models.queue import Queue
from queueline.models.ticket import Ticket, TicketStatus, TicketAction, TICKET_TRANSITIONS

__all__ = [
    "Queue",
    "Ticket",
    "TicketStatus",
    "TicketAction",
    "TICKET_TRANSITIONS",
]
