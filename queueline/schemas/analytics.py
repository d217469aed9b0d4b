"""
Pydantic schemas for queue analytics reports
"""

from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
import uuid


class AnalyticsPeriod(BaseModel):
    label: str
    start: datetime
    end: datetime
    days: int


class AnalyticsSummary(BaseModel):
    total_tickets: int = 0
    completed_tickets: int = 0
    completion_rate: float = 0.0     # percent, one decimal
    avg_wait_time: int = 0           # minutes; only completions with wait_time > 0
    max_wait_time: int = 0
    min_wait_time: int = 0


class StatusDistribution(BaseModel):
    waiting: int = 0
    serving: int = 0
    completed: int = 0
    cancelled: int = 0


class DailyStat(BaseModel):
    day: date
    total: int = 0
    completed: int = 0
    avg_wait_time: int = 0


class HourlyCount(BaseModel):
    hour: int
    count: int = 0


class AnalyticsTrends(BaseModel):
    daily_avg: float = 0.0
    peak_day: Optional[DailyStat] = None
    busiest_hour: Optional[HourlyCount] = None


class QueueAnalytics(BaseModel):
    """Windowed report for one queue"""
    queue_id: uuid.UUID
    queue_name: str
    period: AnalyticsPeriod
    summary: AnalyticsSummary
    status_distribution: StatusDistribution
    daily_stats: List[DailyStat]
    hourly_distribution: List[HourlyCount]
    trends: AnalyticsTrends


class DailyCount(BaseModel):
    day: date
    count: int = 0


class QueueStatistics(BaseModel):
    """All-time counters for one queue"""
    total: int = 0
    waiting: int = 0
    serving: int = 0
    completed: int = 0
    cancelled: int = 0
    avg_wait_time: int = 0
    todays_tickets: int = 0
    daily_counts: List[DailyCount] = []


class QueueOverviewEntry(BaseModel):
    queue_id: uuid.UUID
    queue_name: str
    total_tickets: int = 0
    completed_tickets: int = 0
    completion_rate: float = 0.0
    avg_wait_time: int = 0


class OwnerOverview(BaseModel):
    """Across every queue of one owner"""
    total_queues: int = 0
    active_queues: int = 0
    total_tickets: int = 0
    todays_tickets: int = 0
    queue_stats: List[QueueOverviewEntry] = []
    most_active_queue: Optional[QueueOverviewEntry] = None
    most_efficient_queue: Optional[QueueOverviewEntry] = None
