"""
Aggregator component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from widget_analytics.domain.entities import DailyAggregate


class EventCountPort(Protocol):
    def count_by_type(
        self,
        widget_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> dict[str, int]:
        """Event counts per type within [start, end]."""
        ...


class AggregateWriterPort(Protocol):
    def upsert(self, row: DailyAggregate) -> DailyAggregate:
        """Insert or fully overwrite the (tenant, day) row."""
        ...
