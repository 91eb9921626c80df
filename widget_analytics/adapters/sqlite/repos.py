"""
SQLite repositories for the analytics pipeline.

Event store, tenant/widget ownership and daily aggregate store. Each call
opens its own connection unless an external one is injected, so repos are
safe to share across aggregator worker threads. Every sqlite3 failure is
rolled back and re-raised as StoreError with the operation name.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from widget_analytics.domain.entities import (
    DailyAggregate,
    EventType,
    Tenant,
    WidgetConfig,
    WidgetEvent,
)
from widget_analytics.domain.errors import StoreError

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_ts(dt: datetime) -> str:
    """UTC ISO timestamp with fixed microsecond precision (sorts lexically)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_ts(s: str) -> datetime:
    return datetime.fromisoformat(s)


def widget_filter(widget_ids: Sequence[str]) -> tuple[str, list[str]]:
    """Equality filter for a single widget, membership filter otherwise."""
    if len(widget_ids) == 1:
        return "widget_id = ?", [widget_ids[0]]
    placeholders = ", ".join("?" for _ in widget_ids)
    return f"widget_id IN ({placeholders})", list(widget_ids)


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    @contextmanager
    def _session(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Connection scope: commit on success, rollback and wrap on failure."""
        conn = self._get_conn()
        try:
            yield conn
            if self._should_close():
                conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite %s failed: %s", operation, e)
            raise StoreError(operation) from e
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Tenants & widget ownership
# -----------------------------------------------------------------------------


class SQLiteTenantRepo(SQLiteRepoBase):
    """Tenants, their legacy widget id and their widget configurations."""

    def get(self, tenant_id: str) -> Tenant | None:
        with self._session("tenant.get") as conn:
            row = conn.execute("SELECT * FROM tenants WHERE id = ?", (tenant_id,)).fetchone()
            return self._map_tenant(row) if row else None

    def save(self, tenant: Tenant) -> Tenant:
        with self._session("tenant.save") as conn:
            conn.execute(
                """
                INSERT INTO tenants (id, name, widget_id, is_active, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    widget_id=excluded.widget_id,
                    is_active=excluded.is_active
                """,
                (
                    tenant.id,
                    tenant.name,
                    tenant.widget_id,
                    int(tenant.is_active),
                    format_ts(tenant.created_at),
                ),
            )
        return tenant

    def save_widget_config(self, config: WidgetConfig) -> WidgetConfig:
        with self._session("widget_config.save") as conn:
            conn.execute(
                """
                INSERT INTO widget_configs (id, tenant_id, widget_id, name, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    widget_id=excluded.widget_id,
                    name=excluded.name,
                    is_active=excluded.is_active
                """,
                (
                    str(config.id),
                    config.tenant_id,
                    config.widget_id,
                    config.name,
                    int(config.is_active),
                    format_ts(config.created_at),
                ),
            )
        return config

    def list_active_widget_configs(self, tenant_id: str) -> list[WidgetConfig]:
        with self._session("widget_config.list_active") as conn:
            rows = conn.execute(
                """
                SELECT * FROM widget_configs
                WHERE tenant_id = ? AND is_active = 1
                ORDER BY created_at ASC, id ASC
                """,
                (tenant_id,),
            ).fetchall()
            return [self._map_config(r) for r in rows]

    def known_widget_ids(self, widget_ids: Sequence[str]) -> set[str]:
        """Subset of widget_ids owned by some tenant."""
        if not widget_ids:
            return set()
        placeholders = ", ".join("?" for _ in widget_ids)
        with self._session("tenant.known_widget_ids") as conn:
            rows = conn.execute(
                f"""
                SELECT widget_id FROM tenants WHERE widget_id IN ({placeholders})
                UNION
                SELECT widget_id FROM widget_configs
                WHERE is_active = 1 AND widget_id IN ({placeholders})
                """,
                [*widget_ids, *widget_ids],
            ).fetchall()
            return {r["widget_id"] for r in rows}

    def list_active(self) -> list[Tenant]:
        with self._session("tenant.list_active") as conn:
            rows = conn.execute(
                "SELECT * FROM tenants WHERE is_active = 1 ORDER BY id ASC"
            ).fetchall()
            return [self._map_tenant(r) for r in rows]

    def _map_tenant(self, row: dict[str, Any]) -> Tenant:
        return Tenant(
            id=row["id"],
            name=row["name"],
            widget_id=row["widget_id"],
            is_active=bool(row["is_active"]),
            created_at=parse_ts(row["created_at"]),
        )

    def _map_config(self, row: dict[str, Any]) -> WidgetConfig:
        return WidgetConfig(
            id=UUID(row["id"]),
            tenant_id=row["tenant_id"],
            widget_id=row["widget_id"],
            name=row["name"],
            is_active=bool(row["is_active"]),
            created_at=parse_ts(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Event store
# -----------------------------------------------------------------------------


class SQLiteEventStore(SQLiteRepoBase):
    """Append-only widget event log."""

    def append(self, events: Sequence[WidgetEvent]) -> None:
        """Insert all events in one transaction."""
        with self._session("events.append") as conn:
            conn.executemany(
                """
                INSERT INTO widget_events (
                    id, widget_id, event_type, lead_id, metadata_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(e.id),
                        e.widget_id,
                        e.event_type.value,
                        e.lead_id,
                        json.dumps(e.metadata) if e.metadata is not None else None,
                        format_ts(e.created_at),
                    )
                    for e in events
                ],
            )

    def count_by_type(
        self,
        widget_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> dict[str, int]:
        """Event counts per type within [start, end]."""
        if not widget_ids:
            return {}
        clause, params = widget_filter(widget_ids)
        with self._session("events.count_by_type") as conn:
            rows = conn.execute(
                f"""
                SELECT event_type, COUNT(*) AS n FROM widget_events
                WHERE {clause} AND created_at >= ? AND created_at <= ?
                GROUP BY event_type
                """,
                [*params, format_ts(start), format_ts(end)],
            ).fetchall()
            return {r["event_type"]: r["n"] for r in rows}

    def list_event_times(
        self,
        widget_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[tuple[str, datetime]]:
        """(event_type, created_at) pairs within [start, end]."""
        if not widget_ids:
            return []
        clause, params = widget_filter(widget_ids)
        with self._session("events.list_event_times") as conn:
            rows = conn.execute(
                f"""
                SELECT event_type, created_at FROM widget_events
                WHERE {clause} AND created_at >= ? AND created_at <= ?
                """,
                [*params, format_ts(start), format_ts(end)],
            ).fetchall()
            return [(r["event_type"], parse_ts(r["created_at"])) for r in rows]

    def has_events(self, widget_ids: Sequence[str], start: datetime, end: datetime) -> bool:
        """True when any event falls within [start, end]."""
        if not widget_ids:
            return False
        clause, params = widget_filter(widget_ids)
        with self._session("events.has_events") as conn:
            row = conn.execute(
                f"""
                SELECT 1 FROM widget_events
                WHERE {clause} AND created_at >= ? AND created_at <= ?
                LIMIT 1
                """,
                [*params, format_ts(start), format_ts(end)],
            ).fetchone()
            return row is not None

    def count_all_by_type(self, widget_ids: Sequence[str]) -> dict[str, int]:
        """Lifetime event counts per type."""
        if not widget_ids:
            return {}
        clause, params = widget_filter(widget_ids)
        with self._session("events.count_all_by_type") as conn:
            rows = conn.execute(
                f"""
                SELECT event_type, COUNT(*) AS n FROM widget_events
                WHERE {clause} GROUP BY event_type
                """,
                params,
            ).fetchall()
            return {r["event_type"]: r["n"] for r in rows}

    def list_recent(self, widget_ids: Sequence[str], limit: int = 5) -> list[WidgetEvent]:
        if not widget_ids:
            return []
        clause, params = widget_filter(widget_ids)
        with self._session("events.list_recent") as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM widget_events WHERE {clause}
                ORDER BY created_at DESC LIMIT ?
                """,
                [*params, limit],
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> WidgetEvent:
        return WidgetEvent(
            id=UUID(row["id"]),
            widget_id=row["widget_id"],
            event_type=EventType(row["event_type"]),
            lead_id=row["lead_id"],
            metadata=json.loads(row["metadata_json"]) if row["metadata_json"] else None,
            created_at=parse_ts(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Aggregate store
# -----------------------------------------------------------------------------


class SQLiteDailyAggregateRepo(SQLiteRepoBase):
    """One row per (tenant, local day); writes always overwrite."""

    def upsert(self, row: DailyAggregate) -> DailyAggregate:
        with self._session("aggregates.upsert") as conn:
            conn.execute(
                """
                INSERT INTO daily_aggregates (
                    tenant_id, day, widget_impressions, widget_clicks,
                    leads_generated, valuations_completed, conversion_rate
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(tenant_id, day) DO UPDATE SET
                    widget_impressions=excluded.widget_impressions,
                    widget_clicks=excluded.widget_clicks,
                    leads_generated=excluded.leads_generated,
                    valuations_completed=excluded.valuations_completed,
                    conversion_rate=excluded.conversion_rate
                """,
                (
                    row.tenant_id,
                    row.day.isoformat(),
                    row.widget_impressions,
                    row.widget_clicks,
                    row.leads_generated,
                    row.valuations_completed,
                    row.conversion_rate,
                ),
            )
        return row

    def get(self, tenant_id: str, day: date) -> DailyAggregate | None:
        with self._session("aggregates.get") as conn:
            row = conn.execute(
                "SELECT * FROM daily_aggregates WHERE tenant_id = ? AND day = ?",
                (tenant_id, day.isoformat()),
            ).fetchone()
            return self._map_row(row) if row else None

    def list_range(self, tenant_id: str, start_day: date, end_day: date) -> list[DailyAggregate]:
        with self._session("aggregates.list_range") as conn:
            rows = conn.execute(
                """
                SELECT * FROM daily_aggregates
                WHERE tenant_id = ? AND day >= ? AND day <= ?
                ORDER BY day ASC
                """,
                (tenant_id, start_day.isoformat(), end_day.isoformat()),
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def list_range_for_active_tenants(self, start_day: date, end_day: date) -> list[DailyAggregate]:
        with self._session("aggregates.list_range_for_active_tenants") as conn:
            rows = conn.execute(
                """
                SELECT a.* FROM daily_aggregates a
                JOIN tenants t ON t.id = a.tenant_id
                WHERE t.is_active = 1 AND a.day >= ? AND a.day <= ?
                ORDER BY a.tenant_id ASC, a.day ASC
                """,
                (start_day.isoformat(), end_day.isoformat()),
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def count_for_tenant(self, tenant_id: str) -> int:
        with self._session("aggregates.count_for_tenant") as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM daily_aggregates WHERE tenant_id = ?",
                (tenant_id,),
            ).fetchone()
            return int(row["n"])

    def list_recent(self, tenant_id: str, limit: int = 5) -> list[DailyAggregate]:
        with self._session("aggregates.list_recent") as conn:
            rows = conn.execute(
                """
                SELECT * FROM daily_aggregates WHERE tenant_id = ?
                ORDER BY day DESC LIMIT ?
                """,
                (tenant_id, limit),
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> DailyAggregate:
        return DailyAggregate(
            tenant_id=row["tenant_id"],
            day=date.fromisoformat(row["day"]),
            widget_impressions=row["widget_impressions"],
            widget_clicks=row["widget_clicks"],
            leads_generated=row["leads_generated"],
            valuations_completed=row["valuations_completed"],
            conversion_rate=row["conversion_rate"],
        )
