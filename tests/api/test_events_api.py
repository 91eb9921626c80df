import pytest

from widget_analytics.adapters.sqlite.repos import SQLiteEventStore
from widget_analytics.api.deps import get_rate_limiter
from widget_analytics.api.main import app
from widget_analytics.app_shell.rate_limit import WidgetRateLimiter
from widget_analytics.rules.models import RateLimitRules

from tests.helpers import WIDGET_A, WIDGET_B


def _count(settings, widget_id=WIDGET_A) -> int:
    return sum(SQLiteEventStore(settings.db_path).count_all_by_type([widget_id]).values())


def test_single_event(client, api_tenant, settings):
    resp = client.post("/events", json={"widgetId": WIDGET_A, "eventType": "OPEN"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "remaining": 999}
    assert _count(settings) == 1


def test_batch(client, api_tenant, settings):
    resp = client.post(
        "/events",
        json={
            "events": [
                {"widgetId": WIDGET_A, "eventType": "OPEN"},
                {"widgetId": WIDGET_B, "eventType": "MESSAGE", "metadata": {"len": 42}},
                {"widgetId": WIDGET_A, "eventType": "CONTACT_FORM_SUBMIT", "leadId": "lead-1"},
            ]
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "count": 3}
    assert _count(settings, WIDGET_A) == 2
    assert _count(settings, WIDGET_B) == 1


@pytest.mark.parametrize(
    "body",
    [
        {"widgetId": WIDGET_A, "eventType": "HOVER"},
        {"eventType": "OPEN"},
        {"widgetId": "", "eventType": "OPEN"},
        {"events": []},
        {"events": [{"widgetId": WIDGET_A, "eventType": "OPEN"}, {"widgetId": WIDGET_A}]},
        [{"widgetId": WIDGET_A, "eventType": "OPEN"}],
    ],
)
def test_invalid_payload(client, api_tenant, settings, body):
    resp = client.post("/events", json=body)

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "validation_error"
    assert "detail" not in body
    assert _count(settings) == 0


def test_invalid_payload_lists_issues(client, api_tenant):
    resp = client.post("/events", json={"widgetId": WIDGET_A, "eventType": "HOVER"})

    issues = resp.json()["details"]
    assert [i["path"] for i in issues] == ["eventType"]


def test_oversized_batch(client, api_tenant, settings):
    events = [{"widgetId": WIDGET_A, "eventType": "OPEN"}] * 101

    resp = client.post("/events", json={"events": events})

    assert resp.status_code == 400
    assert "Batch too large" in resp.json()["error"]
    assert _count(settings) == 0


def test_unknown_widget(client, api_tenant):
    resp = client.post("/events", json={"widgetId": "nobody", "eventType": "OPEN"})

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_rate_limited(client, api_tenant, settings, clock):
    limiter = WidgetRateLimiter(RateLimitRules(window_seconds=60, max_events=3), clock)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    for expected in (2, 1, 0):
        resp = client.post("/events", json={"widgetId": WIDGET_A, "eventType": "OPEN"})
        assert resp.json()["remaining"] == expected

    resp = client.post("/events", json={"widgetId": WIDGET_A, "eventType": "OPEN"})

    assert resp.status_code == 429
    body = resp.json()
    assert body["success"] is False
    assert body["remaining"] == 0
    assert body["code"] == "rate_limit_exceeded"
    assert _count(settings) == 3

    # other widgets keep their own budget
    resp = client.post("/events", json={"widgetId": WIDGET_B, "eventType": "OPEN"})
    assert resp.status_code == 200


def test_cors_preflight(client):
    resp = client.options(
        "/events",
        headers={
            "Origin": "https://agency.example",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
