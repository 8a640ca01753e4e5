"""
Event ingestion pipeline for account fills pushed by the venue.
"""

from .ingestor import EventIngestor, FillConsumer  # noqa: F401
