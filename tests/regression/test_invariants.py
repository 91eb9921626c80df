import math
import random
from datetime import timedelta

import pytest

from widget_analytics.components.aggregator import ScheduledInput, run_scheduled
from widget_analytics.components.ingest import IngestInput, run_ingest
from widget_analytics.components.live_metrics import LiveMetricsInput, run_live_metrics
from widget_analytics.core.services.funnel import EventCounts, build_funnel, compute_metrics
from widget_analytics.domain.errors import NotFoundError, RateLimitError

from tests.helpers import NOW_UTC, TENANT_ID, WIDGET_A, WIDGET_B


@pytest.fixture
def ingest(ctx, rate_limiter):
    def _ingest(body):
        return run_ingest(
            IngestInput(data=body),
            event_store=ctx.event_store,
            widgets=ctx.tenant_repo,
            rate_limiter=rate_limiter,
            time_port=ctx.time_port,
            rules=ctx.rules,
        )

    return _ingest


def _live(ctx):
    return run_live_metrics(
        LiveMetricsInput(TENANT_ID),
        tenants=ctx.tenant_repo,
        events=ctx.event_store,
        time_port=ctx.time_port,
    )


# --- Percentages ---
def test_percentages_bounded_for_any_event_mix():
    """Every rate and drop-off stays finite and within [0, 100]."""
    rng = random.Random(20250615)
    for _ in range(500):
        counts = EventCounts(*(rng.choice([0, 0, 1, 2, 5, 50, 1000]) for _ in range(6)))
        metrics = compute_metrics(counts)
        funnel = build_funnel(counts)
        rates = [
            metrics.conversion_rate,
            metrics.valuation_to_lead_rate,
            metrics.form_start_to_submit_rate,
            funnel.drop_off_open_to_message,
            funnel.drop_off_message_to_valuation,
            funnel.drop_off_valuation_to_form,
            funnel.drop_off_form_to_submit,
        ]
        for rate in rates:
            assert math.isfinite(rate)
            assert 0.0 <= rate <= 100.0


# --- Rate limit window ---
def test_thousand_and_first_event_is_refused_until_window_resets(tenant, ctx, ingest):
    """A widget gets 1000 events per window; the budget returns after it."""
    batch = {"events": [{"widgetId": WIDGET_A, "eventType": "OPEN"}] * 100}
    for _ in range(10):
        ingest(batch)

    with pytest.raises(RateLimitError) as exc_info:
        ingest({"widgetId": WIDGET_A, "eventType": "OPEN"})
    assert exc_info.value.remaining == 0
    assert exc_info.value.to_detail()["remaining"] == 0

    # another widget is unaffected
    assert ingest({"widgetId": WIDGET_B, "eventType": "OPEN"}).remaining == 999

    ctx.time_port.advance(timedelta(hours=24, seconds=1))
    out = ingest({"widgetId": WIDGET_A, "eventType": "OPEN"})
    assert out.remaining == 999


# --- All-or-nothing ingest ---
def test_unknown_widget_in_batch_stores_nothing(tenant, ctx, ingest):
    batch = {
        "events": [
            {"widgetId": WIDGET_A, "eventType": "OPEN"},
            {"widgetId": "intruder", "eventType": "OPEN"},
        ]
    }

    with pytest.raises(NotFoundError):
        ingest(batch)

    assert ctx.event_store.count_all_by_type([WIDGET_A]) == {}
    # budget untouched
    assert ingest({"widgetId": WIDGET_A, "eventType": "OPEN"}).remaining == 999


# --- Live and stored views agree ---
def test_one_event_is_one_impression(tenant, ctx, ingest):
    before = _live(ctx).widget_impressions

    ingest({"widgetId": WIDGET_B, "eventType": "OPEN"})

    assert _live(ctx).widget_impressions == before + 1


def test_daily_row_matches_live_for_same_day(tenant, ctx, ingest):
    """Aggregating today's finished day reproduces the live counters."""
    for event_type in ("OPEN", "OPEN", "MESSAGE", "VALUATION_VIEW", "CONTACT_FORM_SUBMIT"):
        ingest({"widgetId": WIDGET_A, "eventType": event_type})
    live = _live(ctx)

    ctx.time_port.advance(timedelta(days=1))
    day, summary = run_scheduled(
        ScheduledInput(),
        tenants=ctx.tenant_repo,
        events=ctx.event_store,
        aggregates=ctx.aggregate_repo,
        time_port=ctx.time_port,
        rules=ctx.rules,
    )

    assert day == (NOW_UTC + timedelta(hours=2)).date()
    assert summary.success == 1
    row = ctx.aggregate_repo.get(TENANT_ID, day)
    assert row.widget_impressions == live.widget_impressions == 2
    assert row.widget_clicks == live.widget_clicks == 3
    assert row.leads_generated == live.leads_generated == 1
    assert row.valuations_completed == live.valuations_completed == 1
    assert row.conversion_rate == live.conversion_rate == 50.0
