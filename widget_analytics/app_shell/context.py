from __future__ import annotations

from dataclasses import dataclass

from widget_analytics.adapters.sqlite.repos import (
    SQLiteDailyAggregateRepo,
    SQLiteEventStore,
    SQLiteTenantRepo,
)
from widget_analytics.adapters.time_local import create_time_adapter
from widget_analytics.ports.time import TimePort
from widget_analytics.rules.models import Rules


@dataclass
class ServiceContext:
    """Adapters wired for one database, shared by the CLI and the API."""

    tenant_repo: SQLiteTenantRepo
    event_store: SQLiteEventStore
    aggregate_repo: SQLiteDailyAggregateRepo
    time_port: TimePort
    rules: Rules

    @classmethod
    def create(
        cls, db_path: str, rules: Rules, time_port: TimePort | None = None
    ) -> ServiceContext:
        clock = time_port or create_time_adapter(rules.analytics.timezone)
        return cls(
            tenant_repo=SQLiteTenantRepo(db_path),
            event_store=SQLiteEventStore(db_path),
            aggregate_repo=SQLiteDailyAggregateRepo(db_path),
            time_port=clock,
            rules=rules,
        )
