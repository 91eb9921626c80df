"""
Reporting component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Protocol

from widget_analytics.components.aggregator import AggregateWriterPort, EventCountPort
from widget_analytics.domain.entities import DailyAggregate, WidgetEvent


class AggregateStorePort(AggregateWriterPort, Protocol):
    """Read side of the aggregate store (plus the aggregator's upsert)."""

    def list_range(self, tenant_id: str, start_day: date, end_day: date) -> list[DailyAggregate]:
        """Rows with start_day <= day <= end_day, oldest first."""
        ...

    def list_range_for_active_tenants(self, start_day: date, end_day: date) -> list[DailyAggregate]:
        """Rows in range for every active tenant."""
        ...

    def count_for_tenant(self, tenant_id: str) -> int:
        ...

    def list_recent(self, tenant_id: str, limit: int = 5) -> list[DailyAggregate]:
        ...


class EventReaderPort(EventCountPort, Protocol):
    """Event store reads used by reporting and diagnostics."""

    def has_events(self, widget_ids: Sequence[str], start: datetime, end: datetime) -> bool:
        """Whether any event falls within [start, end]."""
        ...

    def count_all_by_type(self, widget_ids: Sequence[str]) -> dict[str, int]:
        """Lifetime counts per event type."""
        ...

    def list_recent(self, widget_ids: Sequence[str], limit: int = 5) -> list[WidgetEvent]:
        ...
