"""Political Truth Tracker: promise and incident ingestion pipeline."""

__version__ = "1.0.0"
