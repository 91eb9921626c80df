"""
Ingest component - Widget event ingestion.

Accepts a single event or a batch, checks widget ownership, applies the
per-widget rate limit and appends the events to the store.

Invariants:
- A rejected request stores nothing and consumes no rate-limit budget
- created_at is always server time
- Metadata is stored verbatim and never interpreted
"""

from __future__ import annotations

from widget_analytics.ports.time import TimePort
from widget_analytics.rules.models import Rules

from ._impl import DEFAULT_EVENT_TYPES, DEFAULT_MAX_BATCH_SIZE, IngestionService
from .models import IngestInput, IngestOutput
from .ports import EventStorePort, RateLimiterPort, WidgetLookupPort


def run_ingest(
    inp: IngestInput,
    *,
    event_store: EventStorePort,
    widgets: WidgetLookupPort,
    rate_limiter: RateLimiterPort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> IngestOutput:
    """
    Ingest widget events.

    Args:
        inp: Raw request body.
        event_store: Event store port.
        widgets: Widget ownership lookup.
        rate_limiter: Per-widget admission.
        time_port: Clock used to stamp events.
        rules: Optional rules for batch size and accepted event types.

    Returns:
        IngestOutput with the stored count and remaining budget.

    Raises:
        ValidationError, NotFoundError, RateLimitError, StoreError
    """
    max_batch_size = DEFAULT_MAX_BATCH_SIZE
    allowed_event_types = DEFAULT_EVENT_TYPES
    if rules is not None:
        max_batch_size = rules.ingest.max_batch_size
        allowed_event_types = frozenset(rules.analytics.event_types)

    service = IngestionService(
        event_store=event_store,
        widgets=widgets,
        rate_limiter=rate_limiter,
        time_port=time_port,
        max_batch_size=max_batch_size,
        allowed_event_types=allowed_event_types,
    )
    return service.ingest(inp.data)
