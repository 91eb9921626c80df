"""
Live metrics component - Today's funnel, computed on demand.
"""

from .component import run_live_metrics
from .models import LiveMetricsInput, LiveMetricsOutput
from .ports import EventQueryPort

__all__ = [
    "run_live_metrics",
    "LiveMetricsInput",
    "LiveMetricsOutput",
    "EventQueryPort",
]
