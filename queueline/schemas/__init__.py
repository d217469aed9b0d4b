"""
Schemas module
"""

from queueline.schemas.analytics import OwnerOverview, QueueAnalytics, QueueStatistics
from queueline.schemas.queue import QueueCreate, QueueRead, QueueSnapshot, QueueUpdate, TicketRead

__all__ = [
    "OwnerOverview",
    "QueueAnalytics",
    "QueueStatistics",
    "QueueCreate",
    "QueueRead",
    "QueueSnapshot",
    "QueueUpdate",
    "TicketRead",
]
