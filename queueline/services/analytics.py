"""
Queue analytics

Pure aggregation over ticket history. Nothing here writes to the store, so
reports can run without the queue lock; they may lag a concurrent engine
write by one operation.

Timestamps are aware UTC. Calendar days and hours of day are taken
in the reference time zone (ANALYTICS_TIMEZONE).
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo
import uuid

import structlog
from sqlmodel import Session

from queueline.core.config import get_settings
from queueline.models.queue import Queue
from queueline.models.ticket import Ticket, TicketStatus, round_half_up
from queueline.models.types import utc_now
from queueline.schemas.analytics import (
    AnalyticsPeriod,
    AnalyticsSummary,
    AnalyticsTrends,
    DailyCount,
    DailyStat,
    HourlyCount,
    OwnerOverview,
    QueueAnalytics,
    QueueOverviewEntry,
    QueueStatistics,
    StatusDistribution,
)
from queueline.services.ticket_store import TicketStore

logger = structlog.get_logger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "7d"

TimeZoneLike = Union[str, ZoneInfo, timezone]


def resolve_period(period: Optional[str]) -> Tuple[str, int]:
    """Map a period label to (label, days); unknown labels mean 7 days"""
    if period in PERIOD_DAYS:
        return period, PERIOD_DAYS[period]
    return DEFAULT_PERIOD, PERIOD_DAYS[DEFAULT_PERIOD]


def _zone(tz: TimeZoneLike):
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def _local(moment: datetime, tz) -> datetime:
    return moment.astimezone(tz)


def _is(ticket: Ticket, status: TicketStatus) -> bool:
    return TicketStatus(ticket.status) == status


def _positive_waits(tickets: Iterable[Ticket]) -> List[int]:
    """Wait times of completed tickets that were actually called"""
    return [
        t.wait_time for t in tickets
        if _is(t, TicketStatus.COMPLETED) and t.wait_time is not None and t.wait_time > 0
    ]


def _average(values: Sequence[int]) -> int:
    return round_half_up(sum(values) / len(values)) if values else 0


def _rate(part: int, total: int) -> float:
    """Percentage with one decimal, 0 for an empty total"""
    if total == 0:
        return 0.0
    return round_half_up(part / total * 1000) / 10


def _first_max(items, key):
    """First item holding the highest key; None when that key is zero"""
    best = None
    for item in items:
        if best is None or key(item) > key(best):
            best = item
    if best is None or key(best) == 0:
        return None
    return best


def _day_range(first: date, last: date) -> List[date]:
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def status_distribution(tickets: Iterable[Ticket]) -> StatusDistribution:
    distribution = StatusDistribution()
    for ticket in tickets:
        key = TicketStatus(ticket.status).value
        setattr(distribution, key, getattr(distribution, key) + 1)
    return distribution


def hourly_distribution(tickets: Iterable[Ticket], now: datetime, tz: TimeZoneLike = "UTC") -> List[HourlyCount]:
    """Tickets created today (reference zone) per hour; always 24 entries"""
    zone = _zone(tz)
    today = _local(now, zone).date()
    counts = [0] * 24
    for ticket in tickets:
        created = _local(ticket.created_at, zone)
        if created.date() == today:
            counts[created.hour] += 1
    return [HourlyCount(hour=hour, count=count) for hour, count in enumerate(counts)]


def daily_stats(
    tickets: Iterable[Ticket],
    first_day: date,
    last_day: date,
    tz: TimeZoneLike = "UTC",
) -> List[DailyStat]:
    """One zero-filled entry per calendar day from first_day to last_day"""
    zone = _zone(tz)
    by_day = {day: [] for day in _day_range(first_day, last_day)}
    for ticket in tickets:
        day = _local(ticket.created_at, zone).date()
        if day in by_day:
            by_day[day].append(ticket)

    return [
        DailyStat(
            day=day,
            total=len(day_tickets),
            completed=sum(1 for t in day_tickets if _is(t, TicketStatus.COMPLETED)),
            avg_wait_time=_average(_positive_waits(day_tickets)),
        )
        for day, day_tickets in by_day.items()
    ]


def build_queue_analytics(
    queue: Queue,
    tickets: Sequence[Ticket],
    *,
    period: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: TimeZoneLike = "UTC",
) -> QueueAnalytics:
    """Windowed analytics report for one queue.

    Args:
        queue: the queue the tickets belong to (only id and name are read)
        tickets: the queue's tickets; anything created before the window start
            is ignored, so passing the full history is fine
        period: "7d", "30d" or "90d"
        now: aware reference instant (defaults to the current UTC time)
        tz: reference time zone for calendar days and hours

    Returns:
        QueueAnalytics. An empty ticket list yields zero counts, a zero-filled
        daily series, 24 zero hours and no peak day or busiest hour.
    """
    now = now or utc_now()
    zone = _zone(tz)
    label, days = resolve_period(period)
    start = now - timedelta(days=days)

    window = [t for t in tickets if t.created_at >= start]
    completed = [t for t in window if _is(t, TicketStatus.COMPLETED)]
    waits = _positive_waits(completed)

    summary = AnalyticsSummary(
        total_tickets=len(window),
        completed_tickets=len(completed),
        completion_rate=_rate(len(completed), len(window)),
        avg_wait_time=_average(waits),
        max_wait_time=max(waits) if waits else 0,
        min_wait_time=min(waits) if waits else 0,
    )

    daily = daily_stats(window, _local(start, zone).date(), _local(now, zone).date(), zone)
    hourly = hourly_distribution(window, now, zone)

    trends = AnalyticsTrends(
        daily_avg=round_half_up(sum(d.total for d in daily) / len(daily) * 10) / 10 if daily else 0.0,
        peak_day=_first_max(daily, key=lambda d: d.total),
        busiest_hour=_first_max(hourly, key=lambda h: h.count),
    )

    return QueueAnalytics(
        queue_id=queue.id,
        queue_name=queue.name,
        period=AnalyticsPeriod(label=label, start=start, end=now, days=days),
        summary=summary,
        status_distribution=status_distribution(window),
        daily_stats=daily,
        hourly_distribution=hourly,
        trends=trends,
    )


def build_queue_statistics(
    tickets: Sequence[Ticket],
    *,
    now: Optional[datetime] = None,
    tz: TimeZoneLike = "UTC",
) -> QueueStatistics:
    """All-time counts, average wait, today's arrivals and a 7-day series"""
    now = now or utc_now()
    zone = _zone(tz)
    today = _local(now, zone).date()
    distribution = status_distribution(tickets)

    week = daily_stats(tickets, today - timedelta(days=6), today, zone)
    return QueueStatistics(
        total=len(tickets),
        waiting=distribution.waiting,
        serving=distribution.serving,
        completed=distribution.completed,
        cancelled=distribution.cancelled,
        avg_wait_time=_average(_positive_waits(tickets)),
        todays_tickets=sum(1 for t in tickets if _local(t.created_at, zone).date() == today),
        daily_counts=[DailyCount(day=d.day, count=d.total) for d in week],
    )


def build_overview(
    queues: Sequence[Queue],
    tickets: Sequence[Ticket],
    *,
    now: Optional[datetime] = None,
    tz: TimeZoneLike = "UTC",
) -> OwnerOverview:
    """Roll-up across several queues (normally every queue of one owner)"""
    now = now or utc_now()
    zone = _zone(tz)
    today = _local(now, zone).date()

    by_queue = {queue.id: [] for queue in queues}
    for ticket in tickets:
        if ticket.queue_id in by_queue:
            by_queue[ticket.queue_id].append(ticket)

    entries = []
    for queue in queues:
        queue_tickets = by_queue[queue.id]
        completed = sum(1 for t in queue_tickets if _is(t, TicketStatus.COMPLETED))
        entries.append(QueueOverviewEntry(
            queue_id=queue.id,
            queue_name=queue.name,
            total_tickets=len(queue_tickets),
            completed_tickets=completed,
            completion_rate=_rate(completed, len(queue_tickets)),
            avg_wait_time=_average(_positive_waits(queue_tickets)),
        ))

    def first_best(key):
        best = None
        for entry in entries:
            if best is None or key(entry) > key(best):
                best = entry
        return best

    return OwnerOverview(
        total_queues=len(queues),
        active_queues=sum(1 for q in queues if q.is_active),
        total_tickets=sum(e.total_tickets for e in entries),
        todays_tickets=sum(
            1 for queue_tickets in by_queue.values() for t in queue_tickets
            if _local(t.created_at, zone).date() == today
        ),
        queue_stats=entries,
        most_active_queue=first_best(lambda e: e.total_tickets),
        most_efficient_queue=first_best(lambda e: e.completion_rate),
    )


class AnalyticsService:
    """Loads ticket history through the store and runs the aggregations"""

    def __init__(self, session: Session, *, tz: Optional[TimeZoneLike] = None):
        settings = get_settings()
        self.store = TicketStore(session)
        self.tz = _zone(tz or settings.ANALYTICS_TIMEZONE)
        self.default_period = settings.ANALYTICS_DEFAULT_PERIOD

    def queue_report(
        self,
        queue_id: uuid.UUID,
        period: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
        owner_id: Optional[uuid.UUID] = None,
    ) -> QueueAnalytics:
        now = now or utc_now()
        queue = self.store.get_queue(queue_id, owner_id)
        _, days = resolve_period(period or self.default_period)
        tickets = self.store.tickets_created_since(queue_id, now - timedelta(days=days))

        report = build_queue_analytics(
            queue, tickets, period=period or self.default_period, now=now, tz=self.tz
        )
        logger.info(f"Analytics for queue {queue_id}: {report.summary.total_tickets} tickets in {report.period.label}")
        return report

    def queue_statistics(
        self,
        queue_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
        owner_id: Optional[uuid.UUID] = None,
    ) -> QueueStatistics:
        self.store.get_queue(queue_id, owner_id)
        tickets = self.store.list_tickets(queue_id)
        return build_queue_statistics(tickets, now=now, tz=self.tz)

    def owner_overview(self, owner_id: uuid.UUID, *, now: Optional[datetime] = None) -> OwnerOverview:
        queues = self.store.list_queues(owner_id)
        tickets = self.store.tickets_for_queues([q.id for q in queues])
        return build_overview(queues, tickets, now=now, tz=self.tz)
