"""
Live metrics component - Today's funnel, computed on demand.

Window is [local midnight, now]; nothing here is persisted.
"""

from __future__ import annotations

import logging

from widget_analytics.components.resolver import TenantRepoPort, resolve_widget_set
from widget_analytics.core.services.funnel import (
    EventCounts,
    HourlyStat,
    bucket_by_hour,
    build_funnel,
    compute_metrics,
)
from widget_analytics.core.services.windows import today_window
from widget_analytics.ports.time import TimePort

from .models import LiveMetricsInput, LiveMetricsOutput
from .ports import EventQueryPort

logger = logging.getLogger(__name__)


def run_live_metrics(
    inp: LiveMetricsInput,
    *,
    tenants: TenantRepoPort,
    events: EventQueryPort,
    time_port: TimePort,
) -> LiveMetricsOutput:
    """
    Compute today's metrics across the tenant's widget set.

    An empty widget set yields the all-zero shape.

    Raises:
        NotFoundError: if the tenant does not exist.
    """
    widget_set = resolve_widget_set(inp.tenant_id, repo=tenants)
    start, end = today_window(time_port)

    if widget_set.is_empty:
        counts = EventCounts()
        hourly: list[HourlyStat] = []
    else:
        ids = widget_set.widget_ids
        counts = EventCounts.from_mapping(events.count_by_type(ids, start, end))
        hourly = bucket_by_hour(events.list_event_times(ids, start, end), time_port.to_local)

    metrics = compute_metrics(counts)
    logger.debug(
        "Live metrics for tenant %s: %d impression(s) over %d widget(s)",
        inp.tenant_id,
        metrics.widget_impressions,
        len(widget_set),
    )

    return LiveMetricsOutput(
        widget_impressions=metrics.widget_impressions,
        widget_clicks=metrics.widget_clicks,
        leads_generated=metrics.leads_generated,
        valuations_completed=metrics.valuations_completed,
        conversion_rate=metrics.conversion_rate,
        close_events=counts.closes,
        message_events=counts.messages,
        contact_form_start_events=counts.form_starts,
        valuation_to_lead_rate=metrics.valuation_to_lead_rate,
        form_start_to_submit_rate=metrics.form_start_to_submit_rate,
        funnel=build_funnel(counts),
        hourly_stats=hourly,
        start=start,
        end=end,
        widget_ids=widget_set.widget_ids,
    )
