"""
Tests for widget event ingestion.

Rejections are whole-request: nothing stored, no rate-limit budget spent.
"""

import pytest

from widget_analytics.app_shell.rate_limit import WidgetRateLimiter
from widget_analytics.components.ingest import IngestInput, parse_payload, run_ingest
from widget_analytics.domain.entities import EventType
from widget_analytics.domain.errors import (
    NotFoundError,
    RateLimitError,
    StoreError,
    ValidationError,
)
from widget_analytics.rules.models import RateLimitRules

from tests.helpers import NOW_UTC, WIDGET_A, WIDGET_B


class FailingStore:
    def append(self, events):
        raise StoreError("events.append")


@pytest.fixture
def ingest(tenant, event_store, tenant_repo, rate_limiter, clock, rules):
    def _ingest(data, *, store=None, limiter=None, rules_=None):
        return run_ingest(
            IngestInput(data=data),
            event_store=store or event_store,
            widgets=tenant_repo,
            rate_limiter=limiter or rate_limiter,
            time_port=clock,
            rules=rules_ or rules,
        )

    return _ingest


def stored(event_store, *widgets):
    return sum(event_store.count_all_by_type(list(widgets) or [WIDGET_A, WIDGET_B]).values())


# --- Single events ---


def test_single_event_stored_once(ingest, event_store):
    out = ingest({"widgetId": WIDGET_A, "eventType": "OPEN"})

    assert out.success
    assert not out.is_batch
    assert out.remaining == 999
    assert event_store.count_all_by_type([WIDGET_A]) == {"OPEN": 1}


def test_server_assigns_created_at(ingest, event_store):
    ingest({"widgetId": WIDGET_A, "eventType": "MESSAGE", "createdAt": "2001-01-01T00:00:00Z"})
    [event] = event_store.list_recent([WIDGET_A])
    assert event.created_at == NOW_UTC


def test_metadata_and_lead_passed_through(ingest, event_store):
    meta = {"page": "/valuation", "nested": {"rooms": 3}}
    ingest(
        {
            "widgetId": WIDGET_B,
            "eventType": "CONTACT_FORM_SUBMIT",
            "leadId": "lead-42",
            "metadata": meta,
        }
    )
    [event] = event_store.list_recent([WIDGET_B])
    assert event.event_type is EventType.CONTACT_FORM_SUBMIT
    assert event.lead_id == "lead-42"
    assert event.metadata == meta


def test_snake_case_fields_accepted(ingest, event_store):
    ingest({"widget_id": WIDGET_A, "event_type": "CLOSE"})
    assert event_store.count_all_by_type([WIDGET_A]) == {"CLOSE": 1}


# --- Validation ---


@pytest.mark.parametrize(
    "body",
    [
        {"widgetId": WIDGET_A, "eventType": "PAGE_VIEW"},
        {"widgetId": WIDGET_A},
        {"eventType": "OPEN"},
        {"widgetId": "", "eventType": "OPEN"},
        {"widgetId": WIDGET_A, "eventType": "OPEN", "metadata": "not-an-object"},
        ["OPEN"],
        "OPEN",
        {"events": []},
        {"events": "nope"},
    ],
)
def test_invalid_payload_rejected(ingest, event_store, body):
    with pytest.raises(ValidationError):
        ingest(body)
    assert stored(event_store) == 0


def test_one_bad_entry_rejects_batch(ingest, event_store):
    body = {
        "events": [
            {"widgetId": WIDGET_A, "eventType": "OPEN"},
            {"widgetId": WIDGET_A, "eventType": "BOGUS"},
        ]
    }
    with pytest.raises(ValidationError) as exc_info:
        ingest(body)
    assert exc_info.value.issues
    assert exc_info.value.to_detail()["details"][0]["path"].startswith("events.1")
    assert stored(event_store) == 0


def test_batch_over_limit_rejected(ingest, event_store, rate_limiter):
    body = {"events": [{"widgetId": WIDGET_A, "eventType": "OPEN"}] * 101}
    with pytest.raises(ValidationError, match="max 100"):
        ingest(body)
    assert stored(event_store) == 0
    assert rate_limiter.admit(WIDGET_A).remaining == 999


def test_batch_of_100_accepted(ingest):
    body = {"events": [{"widgetId": WIDGET_A, "eventType": "OPEN"}] * 100}
    out = ingest(body)
    assert out.is_batch
    assert out.count == 100
    assert out.remaining is None


def test_event_type_outside_configured_set(ingest, rules, event_store):
    narrowed = rules.model_copy(
        update={"analytics": rules.analytics.model_copy(update={"event_types": ["OPEN"]})}
    )
    with pytest.raises(ValidationError, match="MESSAGE"):
        ingest({"widgetId": WIDGET_A, "eventType": "MESSAGE"}, rules_=narrowed)
    assert stored(event_store) == 0


def test_parse_payload_shapes():
    payloads, is_batch = parse_payload({"widgetId": "w", "eventType": "OPEN"})
    assert not is_batch and payloads[0].widget_id == "w"

    payloads, is_batch = parse_payload({"events": [{"widgetId": "w", "eventType": "OPEN"}] * 3})
    assert is_batch and len(payloads) == 3


# --- Ownership ---


def test_unknown_widget_rejected(ingest, event_store):
    with pytest.raises(NotFoundError, match="ghost"):
        ingest({"widgetId": "ghost", "eventType": "OPEN"})


def test_unknown_widget_rejects_whole_batch(ingest, event_store, rate_limiter):
    body = {
        "events": [
            {"widgetId": WIDGET_A, "eventType": "OPEN"},
            {"widgetId": "ghost-1", "eventType": "OPEN"},
            {"widgetId": WIDGET_B, "eventType": "OPEN"},
            {"widgetId": "ghost-2", "eventType": "OPEN"},
        ]
    }
    with pytest.raises(NotFoundError, match="ghost-1"):
        ingest(body)

    assert stored(event_store) == 0
    assert rate_limiter.admit(WIDGET_A).remaining == 999


# --- Rate limiting ---


def test_rate_limit_exceeded(ingest, event_store, rate_limiter):
    rate_limiter.admit(WIDGET_A, 1000)

    with pytest.raises(RateLimitError) as exc_info:
        ingest({"widgetId": WIDGET_A, "eventType": "OPEN"})

    assert exc_info.value.remaining == 0
    assert exc_info.value.to_detail()["remaining"] == 0
    assert stored(event_store) == 0


def test_refused_group_refunds_admitted_groups(ingest, event_store, clock):
    limiter = WidgetRateLimiter(RateLimitRules(window_seconds=86400, max_events=5), clock)
    limiter.admit(WIDGET_B, 4)

    body = {
        "events": [{"widgetId": WIDGET_A, "eventType": "OPEN"}] * 3
        + [{"widgetId": WIDGET_B, "eventType": "OPEN"}] * 2
    }
    with pytest.raises(RateLimitError):
        ingest(body, limiter=limiter)

    assert stored(event_store) == 0
    # widget A's 3 admitted events were given back
    assert limiter.admit(WIDGET_A, 5).allowed


def test_storage_failure_refunds_budget(ingest, rate_limiter):
    with pytest.raises(StoreError):
        ingest({"widgetId": WIDGET_A, "eventType": "OPEN"}, store=FailingStore())
    assert rate_limiter.admit(WIDGET_A).remaining == 999


def test_store_error_hides_detail():
    err = StoreError("events.append")
    assert err.status_code == 500
    assert err.to_detail()["error"] == "Internal server error"
