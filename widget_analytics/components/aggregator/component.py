"""
Aggregator component - Daily per-tenant rollups.

Two modes share one unit of work (tenant, local day):
- scheduled: every active tenant, one day (default: yesterday)
- backfill: one tenant, an inclusive range of days

Invariants:
- Re-running a unit with no new events yields an identical row
- A day with no events yields an all-zero row, never a missing one
- One failing unit never aborts the run
"""

from __future__ import annotations

from datetime import date, timedelta

from widget_analytics.components.resolver import TenantRepoPort
from widget_analytics.core.services.windows import iter_days, local_today, local_yesterday
from widget_analytics.domain.errors import ValidationError
from widget_analytics.ports.time import TimePort
from widget_analytics.rules.models import Rules

from ._impl import AggregatorConfig, DailyAggregator
from .models import AggregationSummary, BackfillInput, ScheduledInput
from .ports import AggregateWriterPort, EventCountPort


def _build_config(rules: Rules | None) -> AggregatorConfig:
    if rules is None:
        return AggregatorConfig()
    agg = rules.aggregation
    return AggregatorConfig(
        max_workers=agg.max_workers,
        unit_timeout_seconds=agg.tenant_timeout_seconds,
    )


def backfill_range(days: int, time_port: TimePort) -> tuple[date, date]:
    """Range covering the last `days` days up to and including today."""
    if days <= 0:
        raise ValidationError("days must be a positive integer")
    today = local_today(time_port)
    return today - timedelta(days=days), today


# --- Component Entry Points ---


def run_scheduled(
    inp: ScheduledInput,
    *,
    tenants: TenantRepoPort,
    events: EventCountPort,
    aggregates: AggregateWriterPort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> tuple[date, AggregationSummary]:
    """
    Aggregate one day for all active tenants.

    Returns:
        (day aggregated, summary)
    """
    day = inp.day or local_yesterday(time_port)
    aggregator = DailyAggregator(tenants, events, aggregates, time_port, _build_config(rules))
    return day, aggregator.run_scheduled(day)


def run_backfill(
    inp: BackfillInput,
    *,
    tenants: TenantRepoPort,
    events: EventCountPort,
    aggregates: AggregateWriterPort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> AggregationSummary:
    """
    Aggregate an inclusive day range for one tenant.

    Raises:
        ValidationError: if start_day is after end_day.
        NotFoundError: if the tenant does not exist.
    """
    if inp.start_day > inp.end_day:
        raise ValidationError("start date must not be after end date")

    aggregator = DailyAggregator(tenants, events, aggregates, time_port, _build_config(rules))
    return aggregator.run_backfill(inp.tenant_id, list(iter_days(inp.start_day, inp.end_day)))
