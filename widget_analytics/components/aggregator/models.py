"""
Aggregator component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

# --- Input Models ---


@dataclass(frozen=True)
class ScheduledInput:
    """All active tenants, one day (default: yesterday, local)."""

    day: date | None = None


@dataclass(frozen=True)
class BackfillInput:
    """One tenant, inclusive day range."""

    tenant_id: str
    start_day: date
    end_day: date


# --- Output Models ---


@dataclass(frozen=True)
class AggregationFailure:
    tenant_id: str
    day: date
    error: str


@dataclass(frozen=True)
class AggregationSummary:
    """
    Outcome of one aggregation run.

    The run itself always completes; per-unit failures are listed in errors.
    """

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[AggregationFailure] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0
