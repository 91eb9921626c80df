"""
Clocks bound to the display timezone.

Storage is UTC; agencies read their numbers by local calendar day, so
conversions go through zoneinfo and follow DST. Naive datetimes are read
as local time by to_utc and as UTC by to_local.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Europe/Rome"


class _ZoneClock(ABC):
    def __init__(self, tz_name: str) -> None:
        self._zone = ZoneInfo(tz_name)

    @property
    def timezone_name(self) -> str:
        return self._zone.key

    @abstractmethod
    def now_utc(self) -> datetime: ...

    def now_local(self) -> datetime:
        return self.now_utc().astimezone(self._zone)

    def to_utc(self, local_dt: datetime) -> datetime:
        aware = local_dt if local_dt.tzinfo else local_dt.replace(tzinfo=self._zone)
        return aware.astimezone(UTC)

    def to_local(self, utc_dt: datetime) -> datetime:
        aware = utc_dt if utc_dt.tzinfo else utc_dt.replace(tzinfo=UTC)
        return aware.astimezone(self._zone)


class LocalTimeAdapter(_ZoneClock):
    """Wall clock."""

    def __init__(self, tz_name: str = DEFAULT_TIMEZONE) -> None:
        super().__init__(tz_name)

    def now_utc(self) -> datetime:
        return datetime.now(UTC)


class FrozenTimeAdapter(_ZoneClock):
    """Clock that only moves when told to; used by tests."""

    def __init__(self, frozen_utc: datetime, tz_name: str = DEFAULT_TIMEZONE) -> None:
        super().__init__(tz_name)
        aware = frozen_utc if frozen_utc.tzinfo else frozen_utc.replace(tzinfo=UTC)
        self._now = aware.astimezone(UTC)

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


def create_time_adapter(tz_name: str = DEFAULT_TIMEZONE) -> LocalTimeAdapter:
    return LocalTimeAdapter(tz_name)
