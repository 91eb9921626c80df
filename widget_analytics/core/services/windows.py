"""
Local calendar windows.

A day window spans [day 00:00:00.000, day 23:59:59.999] in the display
timezone and is returned as UTC bounds (both inclusive). DST days are 23 or
25 hours long; the bounds follow the wall clock.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta

from widget_analytics.ports.time import TimePort

DAY_END_RESOLUTION = timedelta(milliseconds=1)


def local_today(time_port: TimePort) -> date:
    """Current calendar day in the display timezone."""
    return time_port.to_local(time_port.now_utc()).date()


def local_yesterday(time_port: TimePort) -> date:
    return local_today(time_port) - timedelta(days=1)


def day_window(day: date, time_port: TimePort) -> tuple[datetime, datetime]:
    """UTC bounds of a local calendar day."""
    start = time_port.to_utc(datetime.combine(day, time.min))
    next_start = time_port.to_utc(datetime.combine(day + timedelta(days=1), time.min))
    return start, next_start - DAY_END_RESOLUTION


def today_window(time_port: TimePort) -> tuple[datetime, datetime]:
    """UTC bounds of [local midnight, now]."""
    now = time_port.now_utc()
    start, _ = day_window(time_port.to_local(now).date(), time_port)
    return start, now


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each day in the inclusive range; nothing when start > end."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
