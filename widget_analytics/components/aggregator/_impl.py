"""
DailyAggregator - per (tenant, day) rollups.

Key behaviors:
- Unit of work is one tenant and one local calendar day
- A unit fully recomputes its row from events and overwrites it
- Tenants without widgets are skipped, not failed
- At most max_workers units run at once, each on a daemon thread; a
  failing or slow unit is recorded and never stops the others
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import date

from widget_analytics.components.resolver import (
    TenantRepoPort,
    list_active_tenants,
    resolve_widget_set,
)
from widget_analytics.core.services.funnel import EventCounts, compute_metrics
from widget_analytics.core.services.windows import day_window
from widget_analytics.domain.entities import DailyAggregate
from widget_analytics.ports.time import TimePort

from .models import AggregationFailure, AggregationSummary
from .ports import AggregateWriterPort, EventCountPort

logger = logging.getLogger(__name__)

Unit = tuple[str, date]
Outcome = tuple[Unit, DailyAggregate | None, Exception | None]


# --- Configuration ---


@dataclass(frozen=True)
class AggregatorConfig:
    max_workers: int = 4
    unit_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 0.5


DEFAULT_CONFIG = AggregatorConfig()


class DailyAggregator:
    """Computes and stores DailyAggregate rows."""

    def __init__(
        self,
        tenants: TenantRepoPort,
        events: EventCountPort,
        aggregates: AggregateWriterPort,
        time_port: TimePort,
        config: AggregatorConfig | None = None,
    ) -> None:
        self._tenants = tenants
        self._events = events
        self._aggregates = aggregates
        self._time = time_port
        self._config = config or DEFAULT_CONFIG

    # --- Single unit ---

    def aggregate_unit(self, tenant_id: str, day: date) -> DailyAggregate | None:
        """
        Recompute one tenant's row for one day.

        Returns None when the tenant owns no widgets (nothing written).
        """
        widget_set = resolve_widget_set(tenant_id, repo=self._tenants)
        if widget_set.is_empty:
            logger.info("Skipping tenant %s for %s: no widgets", tenant_id, day)
            return None

        start, end = day_window(day, self._time)
        counts = EventCounts.from_mapping(
            self._events.count_by_type(widget_set.widget_ids, start, end)
        )
        metrics = compute_metrics(counts)

        row = DailyAggregate(
            tenant_id=tenant_id,
            day=day,
            widget_impressions=metrics.widget_impressions,
            widget_clicks=metrics.widget_clicks,
            leads_generated=metrics.leads_generated,
            valuations_completed=metrics.valuations_completed,
            conversion_rate=metrics.conversion_rate,
        )
        return self._aggregates.upsert(row)

    # --- Batch Processing ---

    def run_units(self, units: list[Unit]) -> AggregationSummary:
        """
        Run units concurrently and collect a summary.

        At most max_workers units are in flight. Each unit runs on its own
        daemon thread; a unit that runs longer than unit_timeout_seconds is
        recorded as failed and its slot goes to the next queued unit while
        the stalled thread is left to finish on its own. Late outcomes of
        timed-out units are discarded.
        """
        success = 0
        skipped = 0
        failures: list[AggregationFailure] = []

        if not units:
            return AggregationSummary()

        timeout = self._config.unit_timeout_seconds
        poll = min(self._config.poll_interval_seconds, timeout)
        limit = max(1, self._config.max_workers)
        outcomes: queue.SimpleQueue[Outcome] = queue.SimpleQueue()
        waiting = deque(units)
        running: dict[Unit, float] = {}

        def _run(unit: Unit) -> None:
            try:
                outcomes.put((unit, self.aggregate_unit(*unit), None))
            except Exception as exc:
                outcomes.put((unit, None, exc))

        while waiting or running:
            while waiting and len(running) < limit:
                unit = waiting.popleft()
                running[unit] = time.monotonic()
                threading.Thread(
                    target=_run,
                    args=(unit,),
                    name=f"aggregator-{unit[0]}-{unit[1]}",
                    daemon=True,
                ).start()

            try:
                unit, row, exc = outcomes.get(timeout=poll)
            except queue.Empty:
                pass
            else:
                if running.pop(unit, None) is not None:
                    tenant_id, day = unit
                    if exc is not None:
                        logger.error(
                            "Aggregation failed for tenant %s on %s: %s",
                            tenant_id,
                            day,
                            exc,
                            exc_info=exc,
                        )
                        failures.append(AggregationFailure(tenant_id, day, str(exc)))
                    elif row is None:
                        skipped += 1
                    else:
                        success += 1

            now = time.monotonic()
            for unit, began in list(running.items()):
                if now - began > timeout:
                    del running[unit]
                    logger.error(
                        "Aggregation timed out for tenant %s on %s after %.1fs",
                        unit[0],
                        unit[1],
                        timeout,
                    )
                    failures.append(
                        AggregationFailure(unit[0], unit[1], f"Timed out after {timeout:g}s")
                    )

        return AggregationSummary(
            total=len(units),
            success=success,
            failed=len(failures),
            skipped=skipped,
            errors=failures,
        )

    def run_scheduled(self, day: date) -> AggregationSummary:
        """Aggregate one day for every active tenant."""
        tenants = list_active_tenants(repo=self._tenants)
        logger.info("Aggregating %s for %d active tenant(s)", day, len(tenants))
        summary = self.run_units([(t.id, day) for t in tenants])
        logger.info(
            "Aggregation for %s done: %d ok, %d skipped, %d failed",
            day,
            summary.success,
            summary.skipped,
            summary.failed,
        )
        return summary

    def run_backfill(self, tenant_id: str, days: list[date]) -> AggregationSummary:
        """Aggregate each of the given days for one tenant."""
        # Fail fast on an unknown tenant rather than once per day
        resolve_widget_set(tenant_id, repo=self._tenants)
        logger.info("Backfilling %d day(s) for tenant %s", len(days), tenant_id)
        return self.run_units([(tenant_id, d) for d in days])


# --- Factory ---


def create_daily_aggregator(
    tenants: TenantRepoPort,
    events: EventCountPort,
    aggregates: AggregateWriterPort,
    time_port: TimePort,
    config: AggregatorConfig | None = None,
) -> DailyAggregator:
    """Create a DailyAggregator."""
    return DailyAggregator(
        tenants=tenants,
        events=events,
        aggregates=aggregates,
        time_port=time_port,
        config=config,
    )
