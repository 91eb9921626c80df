"""
Aggregator component - Daily per-tenant rollups.
"""

from ._impl import AggregatorConfig, DailyAggregator, create_daily_aggregator
from .component import backfill_range, run_backfill, run_scheduled
from .models import AggregationFailure, AggregationSummary, BackfillInput, ScheduledInput
from .ports import AggregateWriterPort, EventCountPort

__all__ = [
    # Entry points
    "backfill_range",
    "run_backfill",
    "run_scheduled",
    # Input models
    "BackfillInput",
    "ScheduledInput",
    # Output models
    "AggregationFailure",
    "AggregationSummary",
    # Ports
    "AggregateWriterPort",
    "EventCountPort",
    # Service
    "AggregatorConfig",
    "DailyAggregator",
    "create_daily_aggregator",
]
