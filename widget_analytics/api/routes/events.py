"""
Widget event ingestion route.

Public endpoint called by the embeddable widget. Accepts a single event
or {"events": [...]}.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from widget_analytics.adapters.sqlite.repos import SQLiteEventStore, SQLiteTenantRepo
from widget_analytics.api.deps import (
    get_clock,
    get_event_store,
    get_rate_limiter,
    get_rules,
    get_tenant_repo,
)
from widget_analytics.api.errors import to_http
from widget_analytics.api.schemas import IngestResponse
from widget_analytics.app_shell.rate_limit import WidgetRateLimiter
from widget_analytics.components.ingest import IngestInput, run_ingest
from widget_analytics.domain.errors import AnalyticsError
from widget_analytics.ports.time import TimePort
from widget_analytics.rules.models import Rules

router = APIRouter()


@router.post(
    "",
    response_model=IngestResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid payload or unknown event type"},
        404: {"description": "Unknown widget"},
        429: {"description": "Rate limit exceeded"},
    },
)
def ingest_events(
    body: Any = Body(...),
    event_store: SQLiteEventStore = Depends(get_event_store),
    tenant_repo: SQLiteTenantRepo = Depends(get_tenant_repo),
    rate_limiter: WidgetRateLimiter = Depends(get_rate_limiter),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> IngestResponse:
    """
    Ingest one or more widget events.

    The request is rejected as a whole: nothing is stored unless every
    event is valid, every widget is known and every widget is within its
    daily budget.
    """
    try:
        out = run_ingest(
            IngestInput(data=body),
            event_store=event_store,
            widgets=tenant_repo,
            rate_limiter=rate_limiter,
            time_port=clock,
            rules=rules,
        )
    except AnalyticsError as e:
        raise to_http(e, "event ingest") from e

    if out.is_batch:
        return IngestResponse(success=out.success, count=out.count)
    return IngestResponse(success=out.success, remaining=out.remaining)
