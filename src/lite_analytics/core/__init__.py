"""
Core analytics module.

Contains the data models, the event store, ingestion and aggregation.
"""

from .engine import AnalyticsEngine
from .ingest import EventIngestor
from .models import (
    AnalyticsSnapshot,
    BreakdownItem,
    Bucket,
    ClientContext,
    CollectPayload,
    DateRange,
    Event,
    EventKind,
    Granularity,
    Overview,
    Site,
    SiteSummary,
)
from .store import D1EventStore, EventStore, SQLEventStore, SQLiteEventStore

__all__ = [
    "Site", "Event", "EventKind", "CollectPayload", "ClientContext",
    "Granularity", "Bucket", "DateRange", "Overview", "BreakdownItem",
    "AnalyticsSnapshot", "SiteSummary",
    "EventStore", "SQLEventStore", "D1EventStore", "SQLiteEventStore",
    "EventIngestor", "AnalyticsEngine",
]
