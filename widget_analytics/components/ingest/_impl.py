"""
IngestionService - widget event ingestion.

Key behaviors:
- The whole request is validated before anything is admitted or stored
- Unknown widget ids reject the whole request (first unknown in order)
- Admission is per widget group and all-or-nothing across groups
- Events are stored in one transaction with server-assigned timestamps
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from widget_analytics.domain.entities import EventType, WidgetEvent
from widget_analytics.domain.errors import (
    NotFoundError,
    RateLimitError,
    StoreError,
    ValidationError,
)
from widget_analytics.ports.time import TimePort

from .models import BatchPayload, EventPayload, IngestOutput
from .ports import EventStorePort, RateLimiterPort, WidgetLookupPort

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_EVENT_TYPES = frozenset(e.value for e in EventType)


def _issues(exc: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {"path": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def parse_payload(
    data: Any, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
) -> tuple[list[EventPayload], bool]:
    """
    Parse a request body into event payloads.

    Returns:
        (payloads, is_batch)

    Raises:
        ValidationError: on any malformed entry, unknown event type, or a
        batch that is empty or larger than max_batch_size.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    if "events" in data:
        events = data["events"]
        if isinstance(events, list) and len(events) > max_batch_size:
            raise ValidationError(f"Batch too large: max {max_batch_size} events per request")
        try:
            return BatchPayload.model_validate(data).events, True
        except PydanticValidationError as e:
            raise ValidationError("Invalid event batch", _issues(e)) from e

    try:
        return [EventPayload.model_validate(data)], False
    except PydanticValidationError as e:
        raise ValidationError("Invalid event data", _issues(e)) from e


class IngestionService:
    """Validates, admits and stores widget events."""

    def __init__(
        self,
        event_store: EventStorePort,
        widgets: WidgetLookupPort,
        rate_limiter: RateLimiterPort,
        time_port: TimePort,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        allowed_event_types: frozenset[str] = DEFAULT_EVENT_TYPES,
    ) -> None:
        self._store = event_store
        self._widgets = widgets
        self._limiter = rate_limiter
        self._time = time_port
        self._max_batch_size = max_batch_size
        self._allowed_event_types = allowed_event_types

    def ingest(self, data: Any) -> IngestOutput:
        payloads, is_batch = parse_payload(data, self._max_batch_size)
        for p in payloads:
            if p.event_type.value not in self._allowed_event_types:
                raise ValidationError(f"Event type not accepted: {p.event_type.value}")

        # Counter keeps first-seen order
        groups = Counter(p.widget_id for p in payloads)
        self._check_known(list(groups))

        remaining = self._admit(groups)

        now = self._time.now_utc()
        events = [
            WidgetEvent(
                widget_id=p.widget_id,
                event_type=p.event_type,
                lead_id=p.lead_id,
                metadata=p.metadata,
                created_at=now,
            )
            for p in payloads
        ]

        try:
            self._store.append(events)
        except StoreError:
            self._refund(groups)
            logger.exception(
                "Failed to store %d event(s) for widget(s) %s",
                len(events),
                ", ".join(groups),
            )
            raise

        logger.debug("Stored %d event(s) for %d widget(s)", len(events), len(groups))
        return IngestOutput(
            success=True,
            count=len(events),
            is_batch=is_batch,
            remaining=None if is_batch else remaining,
        )

    def _check_known(self, widget_ids: list[str]) -> None:
        known = self._widgets.known_widget_ids(widget_ids)
        for widget_id in widget_ids:
            if widget_id not in known:
                logger.info("Rejected events for unknown widget %s", widget_id)
                raise NotFoundError(f"Widget not found: {widget_id}")

    def _admit(self, groups: Counter[str]) -> int:
        """Admit every group or none. Returns the last group's remaining budget."""
        admitted: list[tuple[str, int]] = []
        remaining = 0
        for widget_id, n in groups.items():
            decision = self._limiter.admit(widget_id, n)
            if not decision.allowed:
                for done_id, done_n in admitted:
                    self._limiter.refund(done_id, done_n)
                logger.warning("Rate limit exceeded for widget %s (%d event(s))", widget_id, n)
                raise RateLimitError(widget_id, decision.limit)
            admitted.append((widget_id, n))
            remaining = decision.remaining
        return remaining

    def _refund(self, groups: Counter[str]) -> None:
        for widget_id, n in groups.items():
            self._limiter.refund(widget_id, n)
