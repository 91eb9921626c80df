from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class EventType(str, Enum):
    """Closed set of widget interaction events."""

    OPEN = "OPEN"
    CLOSE = "CLOSE"
    MESSAGE = "MESSAGE"
    VALUATION_VIEW = "VALUATION_VIEW"
    CONTACT_FORM_START = "CONTACT_FORM_START"
    CONTACT_FORM_SUBMIT = "CONTACT_FORM_SUBMIT"


# --- Tenants & Widgets ---


class Tenant(BaseModel):
    id: str
    name: str
    widget_id: str | None = None  # legacy primary widget
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class WidgetConfig(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    widget_id: str
    name: str = ""
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# --- Events ---


class WidgetEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    widget_id: str
    event_type: EventType
    lead_id: str | None = None
    metadata: dict[str, Any] | None = None  # opaque, passed through verbatim
    created_at: datetime


# --- Rollups ---


class DailyAggregate(BaseModel):
    """Full recomputation of one tenant's widget activity for one local day."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    day: date
    widget_impressions: int = 0
    widget_clicks: int = 0
    leads_generated: int = 0
    valuations_completed: int = 0
    conversion_rate: float = 0.0
