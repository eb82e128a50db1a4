"""
Admin dashboard statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from backend.db import MessageRecord, ReviewRecord

DAILY_WINDOW_DAYS = 7
RECENT_MESSAGES = 5


@dataclass
class DailyCount:
    date: str
    count: int


@dataclass
class DashboardStats:
    total_messages: int
    total_recipients: int
    engagement: str
    daily_messages: list[DailyCount]
    recent_messages: list[MessageRecord]


def _day_label(day: datetime) -> str:
    return f"{day:%b} {day.day}"


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def compute_dashboard(
    messages: Sequence[MessageRecord], now: Optional[datetime] = None
) -> DashboardStats:
    """`messages` must be ordered newest first."""
    now = now or datetime.now(timezone.utc)
    today = _start_of_day(now)

    total_messages = len(messages)
    total_recipients = len({m.recipient for m in messages})
    engagement = (
        f"{total_messages / total_recipients:.2f}" if total_recipients else "0.00"
    )

    days = [today - timedelta(days=i) for i in range(DAILY_WINDOW_DAYS - 1, -1, -1)]
    counts = {_day_label(day): 0 for day in days}
    window_start = days[0]
    for message in messages:
        sent = datetime.fromtimestamp(message.timestamp, tz=timezone.utc)
        if window_start <= sent < today + timedelta(days=1):
            counts[_day_label(_start_of_day(sent))] += 1

    return DashboardStats(
        total_messages=total_messages,
        total_recipients=total_recipients,
        engagement=engagement,
        daily_messages=[DailyCount(date=label, count=n) for label, n in counts.items()],
        recent_messages=list(messages[:RECENT_MESSAGES]),
    )


def review_summary(reviews: Sequence[ReviewRecord]) -> tuple[float, int]:
    """Average rating rounded to one decimal, and review count."""
    if not reviews:
        return 0.0, 0
    average = sum(r.rating for r in reviews) / len(reviews)
    return round(average, 1), len(reviews)
