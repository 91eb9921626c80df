"""
Ingest component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from widget_analytics.domain.entities import EventType

# --- Wire payloads ---


class EventPayload(BaseModel):
    """One client-side widget event as posted by the embed script."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    widget_id: str = Field(min_length=1)
    event_type: EventType
    lead_id: str | None = None
    metadata: dict[str, Any] | None = None


class BatchPayload(BaseModel):
    events: list[EventPayload] = Field(min_length=1)


# --- Input Models ---


@dataclass(frozen=True)
class IngestInput:
    """Raw request body: a single event object or {"events": [...]}."""

    data: Any


# --- Output Models ---


@dataclass(frozen=True)
class IngestOutput:
    success: bool
    count: int
    is_batch: bool
    remaining: int | None = None  # single-event requests only
