"""Widget interaction analytics: ingestion, live metrics and daily rollups."""

__version__ = "0.1.0"
