"""
Analytics read and aggregation routes.

Tenant endpoints act on the tenant of the session token. The scheduler
endpoint is protected by the CRON_SECRET bearer token.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query

from widget_analytics.adapters.sqlite.repos import (
    SQLiteDailyAggregateRepo,
    SQLiteEventStore,
    SQLiteTenantRepo,
)
from widget_analytics.api.deps import (
    get_aggregate_repo,
    get_clock,
    get_current_tenant_id,
    get_event_store,
    get_rules,
    get_session_tenant_id,
    get_tenant_repo,
    parse_day,
    require_scheduler,
)
from widget_analytics.api.errors import to_http
from widget_analytics.api.schemas import (
    AggregateResponse,
    AggregationResults,
    DiagnosticsResponse,
    ForceAggregateResponse,
    LiveMetricsData,
    LiveMetricsResponse,
    PlatformAverageResponse,
    ReportResponse,
)
from widget_analytics.components.aggregator import ScheduledInput, run_scheduled
from widget_analytics.components.live_metrics import LiveMetricsInput, run_live_metrics
from widget_analytics.components.reporting import (
    ForceAggregateInput,
    ReportInput,
    run_diagnostics,
    run_force_aggregate,
    run_platform_average,
    run_report,
)
from widget_analytics.domain.errors import AnalyticsError, ValidationError
from widget_analytics.ports.time import TimePort
from widget_analytics.rules.models import Rules

router = APIRouter()

TenantId = Annotated[str, Depends(get_current_tenant_id)]


@router.get("", response_model=ReportResponse)
def get_report(
    tenant_id: TenantId,
    start_date: Annotated[str | None, Query(alias="startDate")] = None,
    end_date: Annotated[str | None, Query(alias="endDate")] = None,
    tenant_repo: SQLiteTenantRepo = Depends(get_tenant_repo),
    event_store: SQLiteEventStore = Depends(get_event_store),
    aggregate_repo: SQLiteDailyAggregateRepo = Depends(get_aggregate_repo),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> ReportResponse:
    """
    Stored daily rows and totals (default: last 30 days).

    When the range has no rows yet it is aggregated on the spot and
    `populated` is true.
    """
    try:
        out = run_report(
            ReportInput(
                tenant_id=tenant_id,
                start_day=parse_day(start_date, "startDate", clock),
                end_day=parse_day(end_date, "endDate", clock),
            ),
            tenants=tenant_repo,
            events=event_store,
            aggregates=aggregate_repo,
            time_port=clock,
            rules=rules,
        )
    except AnalyticsError as e:
        raise to_http(e, f"report for tenant {tenant_id}") from e
    return ReportResponse.from_output(out)


@router.get("/live", response_model=LiveMetricsResponse)
def get_live_metrics(
    tenant_id: TenantId,
    tenant_repo: SQLiteTenantRepo = Depends(get_tenant_repo),
    event_store: SQLiteEventStore = Depends(get_event_store),
    clock: TimePort = Depends(get_clock),
) -> LiveMetricsResponse:
    """Today's funnel, computed from raw events."""
    try:
        out = run_live_metrics(
            LiveMetricsInput(tenant_id=tenant_id),
            tenants=tenant_repo,
            events=event_store,
            time_port=clock,
        )
    except AnalyticsError as e:
        raise to_http(e, f"live metrics for tenant {tenant_id}") from e
    return LiveMetricsResponse(data=LiveMetricsData.from_output(out))


@router.post(
    "/aggregate",
    response_model=AggregateResponse,
    dependencies=[Depends(require_scheduler)],
)
def aggregate_day(
    body: Any = Body(None),
    tenant_repo: SQLiteTenantRepo = Depends(get_tenant_repo),
    event_store: SQLiteEventStore = Depends(get_event_store),
    aggregate_repo: SQLiteDailyAggregateRepo = Depends(get_aggregate_repo),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> AggregateResponse:
    """
    Scheduled run: aggregate one day (default: yesterday) for every active tenant.

    Answers 200 whenever the run completes, even if some tenants failed.
    """
    try:
        raw_day = None
        if body is not None:
            if not isinstance(body, dict):
                raise ValidationError("Request body must be a JSON object")
            raw_day = body.get("date")
            if raw_day is not None and not isinstance(raw_day, str):
                raise ValidationError("date must be a string")

        day, summary = run_scheduled(
            ScheduledInput(day=parse_day(raw_day, "date", clock)),
            tenants=tenant_repo,
            events=event_store,
            aggregates=aggregate_repo,
            time_port=clock,
            rules=rules,
        )
    except AnalyticsError as e:
        raise to_http(e, "scheduled aggregation") from e

    return AggregateResponse(day=day, results=AggregationResults.from_summary(summary))


@router.post("/force-aggregate", response_model=ForceAggregateResponse)
def force_aggregate(
    tenant_id: Annotated[str, Depends(get_session_tenant_id)],
    days: Annotated[int | None, Query()] = None,
    tenant_repo: SQLiteTenantRepo = Depends(get_tenant_repo),
    event_store: SQLiteEventStore = Depends(get_event_store),
    aggregate_repo: SQLiteDailyAggregateRepo = Depends(get_aggregate_repo),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> ForceAggregateResponse:
    """Re-aggregate the caller's last N days (default 90)."""
    try:
        out = run_force_aggregate(
            ForceAggregateInput(tenant_id=tenant_id, days=days),
            tenants=tenant_repo,
            events=event_store,
            aggregates=aggregate_repo,
            time_port=clock,
            rules=rules,
        )
    except AnalyticsError as e:
        raise to_http(e, f"force aggregate for tenant {tenant_id}") from e
    return ForceAggregateResponse.from_output(out)


@router.get(
    "/platform-average",
    response_model=PlatformAverageResponse,
    dependencies=[Depends(get_session_tenant_id)],
)
def platform_average(
    aggregate_repo: SQLiteDailyAggregateRepo = Depends(get_aggregate_repo),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> PlatformAverageResponse:
    """Benchmark: mean conversion rate across active tenants."""
    try:
        out = run_platform_average(aggregates=aggregate_repo, time_port=clock, rules=rules)
    except AnalyticsError as e:
        raise to_http(e, "platform average") from e
    return PlatformAverageResponse.from_output(out)


@router.get("/diagnostics", response_model=DiagnosticsResponse)
def diagnostics(
    tenant_id: TenantId,
    tenant_repo: SQLiteTenantRepo = Depends(get_tenant_repo),
    event_store: SQLiteEventStore = Depends(get_event_store),
    aggregate_repo: SQLiteDailyAggregateRepo = Depends(get_aggregate_repo),
) -> DiagnosticsResponse:
    """Raw event and rollup state for troubleshooting an empty dashboard."""
    try:
        out = run_diagnostics(
            tenant_id,
            tenants=tenant_repo,
            events=event_store,
            aggregates=aggregate_repo,
        )
    except AnalyticsError as e:
        raise to_http(e, f"diagnostics for tenant {tenant_id}") from e
    return DiagnosticsResponse.from_output(out)
