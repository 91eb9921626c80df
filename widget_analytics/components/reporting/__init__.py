"""
Reporting component - Historical read path, benchmarks and diagnostics.
"""

from .component import (
    calculate_totals,
    run_diagnostics,
    run_force_aggregate,
    run_platform_average,
    run_report,
)
from .models import (
    DiagnosticsOutput,
    ForceAggregateInput,
    ForceAggregateOutput,
    PeriodTotals,
    PlatformAverage,
    ReportInput,
    ReportOutput,
)
from .ports import AggregateStorePort, EventReaderPort

__all__ = [
    # Entry points
    "calculate_totals",
    "run_diagnostics",
    "run_force_aggregate",
    "run_platform_average",
    "run_report",
    # Input models
    "ForceAggregateInput",
    "ReportInput",
    # Output models
    "DiagnosticsOutput",
    "ForceAggregateOutput",
    "PeriodTotals",
    "PlatformAverage",
    "ReportOutput",
    # Ports
    "AggregateStorePort",
    "EventReaderPort",
]
