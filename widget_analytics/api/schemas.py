"""
Response models for the HTTP API.

All JSON keys are camelCase.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from widget_analytics.components.aggregator import AggregationSummary
from widget_analytics.components.live_metrics import LiveMetricsOutput
from widget_analytics.components.reporting import (
    DiagnosticsOutput,
    ForceAggregateOutput,
    PeriodTotals,
    PlatformAverage,
    ReportOutput,
)
from widget_analytics.domain.entities import DailyAggregate, WidgetEvent


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Ingest ---


class IngestResponse(CamelModel):
    success: bool = True
    remaining: int | None = None
    count: int | None = None


# --- Live metrics ---


class FunnelSchema(CamelModel):
    step1_opened: int
    step2_messaged: int
    step3_valuation: int
    step4_form_started: int
    step5_lead_submitted: int
    drop_off_open_to_message: float
    drop_off_message_to_valuation: float
    drop_off_valuation_to_form: float
    drop_off_form_to_submit: float


class HourlyStatSchema(CamelModel):
    hour: int
    opens: int
    messages: int
    valuations: int
    leads: int


class TimeRange(CamelModel):
    start: datetime
    end: datetime


class LiveMetricsData(CamelModel):
    widget_impressions: int
    widget_clicks: int
    leads_generated: int
    valuations_completed: int
    conversion_rate: float
    close_events: int
    message_events: int
    contact_form_start_events: int
    valuation_to_lead_rate: float
    form_start_to_submit_rate: float
    funnel: FunnelSchema
    hourly_stats: list[HourlyStatSchema]
    date_range: TimeRange
    widget_ids: list[str]
    is_live: bool = True

    @classmethod
    def from_output(cls, out: LiveMetricsOutput) -> LiveMetricsData:
        return cls(
            widget_impressions=out.widget_impressions,
            widget_clicks=out.widget_clicks,
            leads_generated=out.leads_generated,
            valuations_completed=out.valuations_completed,
            conversion_rate=out.conversion_rate,
            close_events=out.close_events,
            message_events=out.message_events,
            contact_form_start_events=out.contact_form_start_events,
            valuation_to_lead_rate=out.valuation_to_lead_rate,
            form_start_to_submit_rate=out.form_start_to_submit_rate,
            funnel=FunnelSchema.model_validate(out.funnel),
            hourly_stats=[HourlyStatSchema.model_validate(h) for h in out.hourly_stats],
            date_range=TimeRange(start=out.start, end=out.end),
            widget_ids=list(out.widget_ids),
            is_live=out.is_live,
        )


class LiveMetricsResponse(CamelModel):
    success: bool = True
    data: LiveMetricsData


# --- Reporting ---


class DailyAggregateSchema(CamelModel):
    tenant_id: str
    day: date = Field(alias="date")
    widget_impressions: int
    widget_clicks: int
    leads_generated: int
    valuations_completed: int
    conversion_rate: float

    @classmethod
    def from_row(cls, row: DailyAggregate) -> DailyAggregateSchema:
        return cls.model_validate(row.model_dump())


class TotalsSchema(CamelModel):
    total_impressions: int
    total_clicks: int
    total_leads: int
    total_valuations: int
    average_conversion_rate: float

    @classmethod
    def from_totals(cls, totals: PeriodTotals) -> TotalsSchema:
        return cls.model_validate(totals)


class DayRange(CamelModel):
    start: date
    end: date
    days: int | None = None


class ReportResponse(CamelModel):
    success: bool = True
    data: list[DailyAggregateSchema]
    totals: TotalsSchema
    populated: bool
    date_range: DayRange

    @classmethod
    def from_output(cls, out: ReportOutput) -> ReportResponse:
        return cls(
            data=[DailyAggregateSchema.from_row(r) for r in out.rows],
            totals=TotalsSchema.from_totals(out.totals),
            populated=out.populated,
            date_range=DayRange(start=out.start_day, end=out.end_day),
        )


# --- Aggregation ---


class AggregationErrorSchema(CamelModel):
    tenant_id: str
    day: date = Field(alias="date")
    error: str


class AggregationResults(CamelModel):
    total: int
    success: int
    failed: int
    skipped: int
    errors: list[AggregationErrorSchema]

    @classmethod
    def from_summary(cls, summary: AggregationSummary) -> AggregationResults:
        return cls(
            total=summary.total,
            success=summary.success,
            failed=summary.failed,
            skipped=summary.skipped,
            errors=[
                AggregationErrorSchema(tenant_id=e.tenant_id, day=e.day, error=e.error)
                for e in summary.errors
            ],
        )


class AggregateResponse(CamelModel):
    """success means the job ran to completion; per-tenant outcomes are in results."""

    success: bool = True
    day: date = Field(alias="date")
    results: AggregationResults


class TenantSummary(CamelModel):
    id: str
    name: str
    widget_ids: list[str]


class ForceAggregation(CamelModel):
    date_range: DayRange
    widget_events_found: int
    analytics_records_created: int
    totals: TotalsSchema
    results: AggregationResults


class ForceAggregateResponse(CamelModel):
    success: bool = True
    message: str = "Aggregation completed"
    tenant: TenantSummary
    aggregation: ForceAggregation

    @classmethod
    def from_output(cls, out: ForceAggregateOutput) -> ForceAggregateResponse:
        return cls(
            tenant=TenantSummary(
                id=out.tenant_id, name=out.tenant_name, widget_ids=list(out.widget_ids)
            ),
            aggregation=ForceAggregation(
                date_range=DayRange(start=out.start_day, end=out.end_day, days=out.days),
                widget_events_found=out.events_found,
                analytics_records_created=out.rows_stored,
                totals=TotalsSchema.from_totals(out.totals),
                results=AggregationResults.from_summary(out.summary),
            ),
        )


# --- Benchmark & diagnostics ---


class PlatformAverageResponse(CamelModel):
    success: bool = True
    average_conversion_rate: float
    sample_size: int
    period: DayRange

    @classmethod
    def from_output(cls, out: PlatformAverage) -> PlatformAverageResponse:
        return cls(
            average_conversion_rate=out.average_conversion_rate,
            sample_size=out.sample_size,
            period=DayRange(start=out.start_day, end=out.end_day),
        )


class EventSchema(CamelModel):
    id: UUID
    widget_id: str
    event_type: str
    lead_id: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_event(cls, event: WidgetEvent) -> EventSchema:
        return cls(
            id=event.id,
            widget_id=event.widget_id,
            event_type=event.event_type.value,
            lead_id=event.lead_id,
            metadata=event.metadata,
            created_at=event.created_at,
        )


class DiagnosticsResponse(CamelModel):
    success: bool = True
    tenant_id: str
    widget_ids: list[str]
    event_counts: dict[str, int]
    total_events: int
    daily_rows: int
    has_widget_events: bool
    has_analytics_records: bool
    recent_events: list[EventSchema]
    recent_rows: list[DailyAggregateSchema]
    recommendation: str

    @classmethod
    def from_output(cls, out: DiagnosticsOutput) -> DiagnosticsResponse:
        return cls(
            tenant_id=out.tenant_id,
            widget_ids=list(out.widget_ids),
            event_counts=out.event_counts,
            total_events=out.total_events,
            daily_rows=out.daily_rows,
            has_widget_events=out.total_events > 0,
            has_analytics_records=out.daily_rows > 0,
            recent_events=[EventSchema.from_event(e) for e in out.recent_events],
            recent_rows=[DailyAggregateSchema.from_row(r) for r in out.recent_rows],
            recommendation=out.recommendation,
        )
