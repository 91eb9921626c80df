"""
Reporting component - Historical read path.

Reads stored daily rows; when a requested range has none and the tenant
has widget events in it, the most recent default_backfill_days of the
range are backfilled synchronously and read again.

Invariants:
- Backfill runs at most once per request
- Backfill never aggregates days after today
- Backfill never spans more than default_backfill_days + 1 days
- average_conversion_rate is recomputed from summed counters, never
  averaged from daily rates
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from widget_analytics.components.aggregator import (
    BackfillInput,
    backfill_range,
    run_backfill,
)
from widget_analytics.components.resolver import TenantRepoPort, resolve_widget_set
from widget_analytics.core.services.funnel import percentage, raw_percentage, round2
from widget_analytics.core.services.windows import day_window, local_today
from widget_analytics.domain.entities import DailyAggregate
from widget_analytics.domain.errors import NotFoundError, ValidationError
from widget_analytics.ports.time import TimePort
from widget_analytics.rules.models import Rules

from .models import (
    DiagnosticsOutput,
    ForceAggregateInput,
    ForceAggregateOutput,
    PeriodTotals,
    PlatformAverage,
    ReportInput,
    ReportOutput,
)
from .ports import AggregateStorePort, EventReaderPort

logger = logging.getLogger(__name__)

DEFAULT_REPORT_DAYS = 30
DEFAULT_BACKFILL_DAYS = 90
DEFAULT_BENCHMARK_DAYS = 30

RECOMMEND_NO_EVENTS = (
    "No widget events found. The widget may not be installed correctly "
    "or has never been used."
)
RECOMMEND_AGGREGATE = "Widget events exist but have not been aggregated. Run a manual aggregation."
RECOMMEND_CHECK_QUERY = "Data present. Check the dashboard query."


def calculate_totals(rows: Iterable[DailyAggregate]) -> PeriodTotals:
    impressions = clicks = leads = valuations = 0
    for row in rows:
        impressions += row.widget_impressions
        clicks += row.widget_clicks
        leads += row.leads_generated
        valuations += row.valuations_completed

    return PeriodTotals(
        total_impressions=impressions,
        total_clicks=clicks,
        total_leads=leads,
        total_valuations=valuations,
        average_conversion_rate=percentage(leads, impressions),
    )


# --- Component Entry Points ---


def run_report(
    inp: ReportInput,
    *,
    tenants: TenantRepoPort,
    events: EventReaderPort,
    aggregates: AggregateStorePort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> ReportOutput:
    """
    Daily rows and totals for a tenant over an inclusive day range.

    Raises:
        ValidationError: if start_day is after end_day.
        NotFoundError: if the tenant does not exist.
    """
    report_days = rules.aggregation.default_report_days if rules else DEFAULT_REPORT_DAYS
    today = local_today(time_port)
    end_day = inp.end_day or today
    start_day = inp.start_day or end_day - timedelta(days=report_days)
    if start_day > end_day:
        raise ValidationError("startDate must not be after endDate")

    widget_set = resolve_widget_set(inp.tenant_id, repo=tenants)

    rows = aggregates.list_range(inp.tenant_id, start_day, end_day)
    populated = False

    if not rows and not widget_set.is_empty:
        backfill_days = (
            rules.aggregation.default_backfill_days if rules else DEFAULT_BACKFILL_DAYS
        )
        backfill_end = min(end_day, today)
        backfill_start = max(start_day, backfill_end - timedelta(days=backfill_days))
        if backfill_start <= backfill_end and events.has_events(
            widget_set.widget_ids,
            day_window(backfill_start, time_port)[0],
            day_window(backfill_end, time_port)[1],
        ):
            logger.info(
                "No daily rows for tenant %s in %s..%s, backfilling",
                inp.tenant_id,
                backfill_start,
                backfill_end,
            )
            summary = run_backfill(
                BackfillInput(inp.tenant_id, backfill_start, backfill_end),
                tenants=tenants,
                events=events,
                aggregates=aggregates,
                time_port=time_port,
                rules=rules,
            )
            if summary.failed:
                logger.warning(
                    "Backfill for tenant %s left %d day(s) failed",
                    inp.tenant_id,
                    summary.failed,
                )
            rows = aggregates.list_range(inp.tenant_id, start_day, end_day)
            populated = True

    return ReportOutput(
        rows=rows,
        totals=calculate_totals(rows),
        populated=populated,
        start_day=start_day,
        end_day=end_day,
    )


def run_force_aggregate(
    inp: ForceAggregateInput,
    *,
    tenants: TenantRepoPort,
    events: EventReaderPort,
    aggregates: AggregateStorePort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> ForceAggregateOutput:
    """
    Re-aggregate the tenant's last N days (default from rules) up to today.

    Raises:
        ValidationError: if days is not positive.
        NotFoundError: if the tenant does not exist.
    """
    days = inp.days
    if days is None:
        days = rules.aggregation.default_backfill_days if rules else DEFAULT_BACKFILL_DAYS

    tenant = tenants.get(inp.tenant_id)
    if tenant is None:
        raise NotFoundError(f"Tenant not found: {inp.tenant_id}")

    start_day, end_day = backfill_range(days, time_port)
    widget_set = resolve_widget_set(tenant.id, repo=tenants)
    events_found = sum(events.count_all_by_type(widget_set.widget_ids).values())

    logger.info(
        "Force aggregating tenant %s (%s) from %s to %s",
        tenant.name,
        tenant.id,
        start_day,
        end_day,
    )
    summary = run_backfill(
        BackfillInput(tenant.id, start_day, end_day),
        tenants=tenants,
        events=events,
        aggregates=aggregates,
        time_port=time_port,
        rules=rules,
    )

    rows = aggregates.list_range(tenant.id, start_day, end_day)
    return ForceAggregateOutput(
        tenant_id=tenant.id,
        tenant_name=tenant.name,
        widget_ids=widget_set.widget_ids,
        start_day=start_day,
        end_day=end_day,
        days=days,
        events_found=events_found,
        rows_stored=aggregates.count_for_tenant(tenant.id),
        summary=summary,
        totals=calculate_totals(rows),
    )


def run_platform_average(
    *,
    aggregates: AggregateStorePort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> PlatformAverage:
    """
    Mean of per-tenant conversion rates across active tenants.

    Only tenants with at least one impression in the period are sampled.
    """
    days = rules.aggregation.benchmark_days if rules else DEFAULT_BENCHMARK_DAYS
    end_day = local_today(time_port)
    start_day = end_day - timedelta(days=days)

    per_tenant: dict[str, list[int]] = {}
    for row in aggregates.list_range_for_active_tenants(start_day, end_day):
        acc = per_tenant.setdefault(row.tenant_id, [0, 0])
        acc[0] += row.widget_impressions
        acc[1] += row.leads_generated

    # Rounded once, after the mean
    rates = [raw_percentage(leads, imps) for imps, leads in per_tenant.values() if imps > 0]
    average = round2(sum(rates) / len(rates)) if rates else 0.0

    return PlatformAverage(
        average_conversion_rate=average,
        sample_size=len(rates),
        start_day=start_day,
        end_day=end_day,
    )


def run_diagnostics(
    tenant_id: str,
    *,
    tenants: TenantRepoPort,
    events: EventReaderPort,
    aggregates: AggregateStorePort,
) -> DiagnosticsOutput:
    """
    Raw state of a tenant's analytics data.

    Raises:
        NotFoundError: if the tenant does not exist.
    """
    widget_set = resolve_widget_set(tenant_id, repo=tenants)
    ids = widget_set.widget_ids

    counts = events.count_all_by_type(ids)
    total_events = sum(counts.values())
    daily_rows = aggregates.count_for_tenant(tenant_id)

    if total_events == 0:
        recommendation = RECOMMEND_NO_EVENTS
    elif daily_rows == 0:
        recommendation = RECOMMEND_AGGREGATE
    else:
        recommendation = RECOMMEND_CHECK_QUERY

    return DiagnosticsOutput(
        tenant_id=tenant_id,
        widget_ids=ids,
        event_counts=counts,
        total_events=total_events,
        daily_rows=daily_rows,
        recent_events=events.list_recent(ids, 5),
        recent_rows=aggregates.list_recent(tenant_id, 5),
        recommendation=recommendation,
    )
