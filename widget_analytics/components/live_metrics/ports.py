"""
Live metrics component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol


class EventQueryPort(Protocol):
    """Read side of the event store."""

    def count_by_type(
        self,
        widget_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> dict[str, int]:
        """Event counts per type within [start, end]."""
        ...

    def list_event_times(
        self,
        widget_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[tuple[str, datetime]]:
        """(event_type, created_at) pairs within [start, end]."""
        ...
