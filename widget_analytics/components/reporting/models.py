"""
Reporting component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from widget_analytics.components.aggregator import AggregationSummary
from widget_analytics.domain.entities import DailyAggregate, WidgetEvent

# --- Input Models ---


@dataclass(frozen=True)
class ReportInput:
    """Defaults: end = today, start = end - default_report_days."""

    tenant_id: str
    start_day: date | None = None
    end_day: date | None = None


@dataclass(frozen=True)
class ForceAggregateInput:
    tenant_id: str
    days: int | None = None


# --- Output Models ---


@dataclass(frozen=True)
class PeriodTotals:
    total_impressions: int = 0
    total_clicks: int = 0
    total_leads: int = 0
    total_valuations: int = 0
    average_conversion_rate: float = 0.0


@dataclass(frozen=True)
class ReportOutput:
    rows: list[DailyAggregate]
    totals: PeriodTotals
    populated: bool
    start_day: date
    end_day: date


@dataclass(frozen=True)
class ForceAggregateOutput:
    tenant_id: str
    tenant_name: str
    widget_ids: tuple[str, ...]
    start_day: date
    end_day: date
    days: int
    events_found: int
    rows_stored: int
    summary: AggregationSummary
    totals: PeriodTotals


@dataclass(frozen=True)
class PlatformAverage:
    average_conversion_rate: float
    sample_size: int
    start_day: date
    end_day: date


@dataclass(frozen=True)
class DiagnosticsOutput:
    tenant_id: str
    widget_ids: tuple[str, ...]
    event_counts: dict[str, int]
    total_events: int
    daily_rows: int
    recent_events: list[WidgetEvent] = field(default_factory=list)
    recent_rows: list[DailyAggregate] = field(default_factory=list)
    recommendation: str = ""
