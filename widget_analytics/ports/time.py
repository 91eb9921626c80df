from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """
    Clock plus conversions between UTC and the display timezone.

    Everything persisted is UTC; calendar days and hour-of-day buckets are
    local.
    """

    @property
    def timezone_name(self) -> str: ...

    def now_utc(self) -> datetime: ...

    def now_local(self) -> datetime: ...

    def to_utc(self, local_dt: datetime) -> datetime:
        """Naive input is local time."""
        ...

    def to_local(self, utc_dt: datetime) -> datetime:
        """Naive input is UTC."""
        ...
