import os
from collections.abc import Callable
from datetime import datetime

import pytest

from widget_analytics.adapters.sqlite.migrator import SQLiteMigrator
from widget_analytics.adapters.sqlite.repos import (
    SQLiteDailyAggregateRepo,
    SQLiteEventStore,
    SQLiteTenantRepo,
)
from widget_analytics.adapters.time_local import FrozenTimeAdapter
from widget_analytics.app_shell.context import ServiceContext
from widget_analytics.app_shell.rate_limit import WidgetRateLimiter
from widget_analytics.domain.entities import EventType, Tenant, WidgetConfig, WidgetEvent
from widget_analytics.rules.loader import load_rules
from widget_analytics.rules.models import Rules

from tests.helpers import MIGRATIONS_DIR, NOW_UTC, RULES_PATH, TENANT_ID, WIDGET_A, WIDGET_B


@pytest.fixture
def rules() -> Rules:
    """REAL rules from project root."""
    return load_rules(RULES_PATH)


@pytest.fixture
def db_path(tmp_path) -> str:
    path = os.path.join(str(tmp_path), "test.db")
    SQLiteMigrator(path, str(MIGRATIONS_DIR)).run_migrations()
    return path


@pytest.fixture
def clock() -> FrozenTimeAdapter:
    return FrozenTimeAdapter(NOW_UTC, "Europe/Rome")


@pytest.fixture
def tenant_repo(db_path) -> SQLiteTenantRepo:
    return SQLiteTenantRepo(db_path)


@pytest.fixture
def event_store(db_path) -> SQLiteEventStore:
    return SQLiteEventStore(db_path)


@pytest.fixture
def aggregate_repo(db_path) -> SQLiteDailyAggregateRepo:
    return SQLiteDailyAggregateRepo(db_path)


@pytest.fixture
def rate_limiter(rules, clock) -> WidgetRateLimiter:
    return WidgetRateLimiter(rules.rate_limit, clock)


@pytest.fixture
def tenant(tenant_repo) -> Tenant:
    """Agency owning legacy widget A and configured widget B."""
    t = tenant_repo.save(Tenant(id=TENANT_ID, name="Agency One", widget_id=WIDGET_A))
    tenant_repo.save_widget_config(
        WidgetConfig(tenant_id=TENANT_ID, widget_id=WIDGET_B, name="Second site")
    )
    return t


@pytest.fixture
def ctx(db_path, rules, clock) -> ServiceContext:
    return ServiceContext.create(db_path, rules, clock)


@pytest.fixture
def add_events(event_store) -> Callable[..., list[WidgetEvent]]:
    """Store n events of one type for a widget at a given UTC time."""

    def _add(
        widget_id: str,
        event_type: EventType,
        n: int = 1,
        at: datetime = NOW_UTC,
    ) -> list[WidgetEvent]:
        events = [
            WidgetEvent(widget_id=widget_id, event_type=event_type, created_at=at)
            for _ in range(n)
        ]
        event_store.append(events)
        return events

    return _add
