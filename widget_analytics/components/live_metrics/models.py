"""
Live metrics component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from widget_analytics.core.services.funnel import FunnelReport, HourlyStat


@dataclass(frozen=True)
class LiveMetricsInput:
    tenant_id: str


@dataclass(frozen=True)
class LiveMetricsOutput:
    """Today's funnel for every widget a tenant owns."""

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

    funnel: FunnelReport
    hourly_stats: list[HourlyStat]

    start: datetime
    end: datetime
    widget_ids: tuple[str, ...] = field(default_factory=tuple)
    is_live: bool = True
