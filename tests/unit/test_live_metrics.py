from datetime import UTC, datetime, timedelta

import pytest

from widget_analytics.components.live_metrics import LiveMetricsInput, run_live_metrics
from widget_analytics.domain.entities import EventType, Tenant
from widget_analytics.domain.errors import NotFoundError

from tests.helpers import NOW_UTC, TENANT_ID, WIDGET_A, WIDGET_B

# local midnight of 2025-06-15 in Rome
MIDNIGHT_UTC = datetime(2025, 6, 14, 22, 0, tzinfo=UTC)


@pytest.fixture
def live(tenant_repo, event_store, clock):
    def _live(tenant_id=TENANT_ID):
        return run_live_metrics(
            LiveMetricsInput(tenant_id=tenant_id),
            tenants=tenant_repo,
            events=event_store,
            time_port=clock,
        )

    return _live


def test_impressions_span_every_widget(tenant, add_events, live):
    add_events(WIDGET_A, EventType.OPEN, 3)
    add_events(WIDGET_B, EventType.OPEN, 2)

    out = live()

    assert out.widget_impressions == 5
    assert out.widget_ids == (WIDGET_A, WIDGET_B)
    assert out.is_live


def test_window_is_local_midnight_to_now(tenant, add_events, live):
    add_events(WIDGET_A, EventType.OPEN, 1, at=MIDNIGHT_UTC)  # first instant of today
    add_events(WIDGET_A, EventType.OPEN, 1, at=MIDNIGHT_UTC - timedelta(milliseconds=1))
    add_events(WIDGET_A, EventType.OPEN, 1, at=NOW_UTC + timedelta(seconds=1))  # future

    out = live()

    assert out.widget_impressions == 1
    assert out.start == MIDNIGHT_UTC
    assert out.end == NOW_UTC


def test_full_funnel(tenant, add_events, live):
    add_events(WIDGET_A, EventType.OPEN, 10)
    add_events(WIDGET_A, EventType.CLOSE, 6)
    add_events(WIDGET_A, EventType.MESSAGE, 5)
    add_events(WIDGET_B, EventType.VALUATION_VIEW, 4)
    add_events(WIDGET_B, EventType.CONTACT_FORM_START, 2)
    add_events(WIDGET_B, EventType.CONTACT_FORM_SUBMIT, 1)

    out = live()

    assert out.widget_clicks == 15
    assert out.leads_generated == 1
    assert out.valuations_completed == 4
    assert out.close_events == 6
    assert out.message_events == 5
    assert out.contact_form_start_events == 2
    assert out.conversion_rate == 10.0
    assert out.valuation_to_lead_rate == 25.0
    assert out.form_start_to_submit_rate == 50.0
    assert out.funnel.step2_messaged == 5
    assert out.funnel.drop_off_open_to_message == 50.0
    assert out.funnel.drop_off_message_to_valuation == 20.0


def test_hourly_stats_local_hours(tenant, add_events, live):
    add_events(WIDGET_A, EventType.OPEN, 2, at=datetime(2025, 6, 15, 7, 5, tzinfo=UTC))
    add_events(
        WIDGET_B, EventType.CONTACT_FORM_SUBMIT, 1, at=datetime(2025, 6, 14, 22, 30, tzinfo=UTC)
    )

    out = live()

    assert [(h.hour, h.opens, h.leads) for h in out.hourly_stats] == [(0, 0, 1), (9, 2, 0)]


def test_no_widgets_all_zero(tenant_repo, live):
    tenant_repo.save(Tenant(id="bare", name="No widgets"))

    out = live("bare")

    assert out.widget_impressions == 0
    assert out.conversion_rate == 0.0
    assert out.funnel.drop_off_form_to_submit == 0.0
    assert out.hourly_stats == []
    assert out.widget_ids == ()
    assert out.is_live


def test_unknown_tenant(live):
    with pytest.raises(NotFoundError):
        live("ghost")
