"""
Ingest component - Widget event ingestion.
"""

from ._impl import IngestionService, parse_payload
from .component import run_ingest
from .models import BatchPayload, EventPayload, IngestInput, IngestOutput
from .ports import EventStorePort, RateLimiterPort, WidgetLookupPort

__all__ = [
    # Entry points
    "run_ingest",
    # Models
    "BatchPayload",
    "EventPayload",
    "IngestInput",
    "IngestOutput",
    # Ports
    "EventStorePort",
    "RateLimiterPort",
    "WidgetLookupPort",
    # Service
    "IngestionService",
    "parse_payload",
]
