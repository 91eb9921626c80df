"""
Demo data: one tenant owning a legacy widget and a configured widget,
plus a handful of events for today.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from widget_analytics.domain.entities import EventType, Tenant, WidgetConfig, WidgetEvent

from .context import ServiceContext

logger = logging.getLogger(__name__)

DEMO_TENANT_ID = "demo-agency"
DEMO_WIDGETS = ("demo-widget-main", "demo-widget-listings")

# (event type, count) per widget; a plausible funnel
_DEMO_FUNNEL = (
    (EventType.OPEN, 12),
    (EventType.MESSAGE, 7),
    (EventType.VALUATION_VIEW, 4),
    (EventType.CONTACT_FORM_START, 3),
    (EventType.CONTACT_FORM_SUBMIT, 2),
    (EventType.CLOSE, 9),
)


def seed_demo(ctx: ServiceContext) -> int:
    """Create the demo tenant and events. Returns the number of events stored."""
    main_widget, extra_widget = DEMO_WIDGETS
    ctx.tenant_repo.save(Tenant(id=DEMO_TENANT_ID, name="Demo Agency", widget_id=main_widget))
    existing = {c.widget_id for c in ctx.tenant_repo.list_active_widget_configs(DEMO_TENANT_ID)}
    if extra_widget not in existing:
        ctx.tenant_repo.save_widget_config(
            WidgetConfig(tenant_id=DEMO_TENANT_ID, widget_id=extra_widget, name="Listings page")
        )

    now = ctx.time_port.now_utc()
    events: list[WidgetEvent] = []
    for widget_id in DEMO_WIDGETS:
        minutes = 0
        for event_type, count in _DEMO_FUNNEL:
            for _ in range(count):
                minutes += 3
                events.append(
                    WidgetEvent(
                        widget_id=widget_id,
                        event_type=event_type,
                        created_at=now - timedelta(minutes=minutes),
                    )
                )

    ctx.event_store.append(events)
    logger.info("Seeded tenant %s with %d events", DEMO_TENANT_ID, len(events))
    return len(events)
