"""
Ingest component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from widget_analytics.app_shell.rate_limit import RateLimitDecision
from widget_analytics.domain.entities import WidgetEvent


class EventStorePort(Protocol):
    """Append-only event store."""

    def append(self, events: Sequence[WidgetEvent]) -> None:
        """Persist all events atomically."""
        ...


class RateLimiterPort(Protocol):
    """Per-widget admission."""

    def admit(self, widget_id: str, n: int = 1) -> RateLimitDecision:
        """Admit n events or refuse all of them."""
        ...

    def refund(self, widget_id: str, n: int) -> None:
        """Return previously admitted events."""
        ...


class WidgetLookupPort(Protocol):
    """Widget ownership check."""

    def known_widget_ids(self, widget_ids: Sequence[str]) -> set[str]:
        """Subset of widget_ids that some tenant owns."""
        ...
