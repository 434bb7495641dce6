"""
Pydantic models for analytics data.
"""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Raw Data Models
# =============================================================================

class EventKind(str, Enum):
    PAGEVIEW = "pageview"
    CUSTOM = "custom"


class Site(BaseModel):
    """A registered tracked property."""
    id: str
    domain: str  # canonical, see domain.normalize_domain
    owner_id: str
    created_at: datetime


class Event(BaseModel):
    """A single immutable pageview or custom event."""
    id: str
    site_id: str
    kind: EventKind
    visitor_hash: str
    pathname: str
    hostname: str
    created_at: datetime

    referrer: str | None = None
    country: str | None = None

    # Technology
    browser: str = "Unknown"
    os: str = "Unknown"
    device: str = "desktop"
    screen_width: int | None = None
    language: str | None = None

    # UTM
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None

    # Custom events only
    event_name: str | None = None
    properties: dict[str, Any] | None = None


class CollectPayload(BaseModel):
    """Beacon body as sent by the tracker script.

    Strings are strict so a number never sneaks in as a path; unknown keys
    are ignored so older trackers keep working.
    """
    model_config = ConfigDict(extra="ignore")

    type: EventKind
    pathname: str = Field(min_length=1, strict=True)
    hostname: str | None = Field(default=None, strict=True)
    referrer: str | None = Field(default=None, strict=True)
    screen_width: float | None = Field(default=None, strict=True, allow_inf_nan=False, ge=0, le=100_000)
    language: str | None = Field(default=None, strict=True)
    website_id: str | None = Field(default=None, strict=True)

    utm_source: str | None = Field(default=None, strict=True)
    utm_medium: str | None = Field(default=None, strict=True)
    utm_campaign: str | None = Field(default=None, strict=True)
    utm_term: str | None = Field(default=None, strict=True)
    utm_content: str | None = Field(default=None, strict=True)

    event_name: str | None = Field(default=None, strict=True)
    properties: dict[str, Any] | None = None


class ClientContext(BaseModel):
    """Request metadata taken from trusted headers, never from the body."""
    ip: str = "127.0.0.1"
    user_agent: str = "unknown"
    country: str | None = None
    origin: str | None = None
    referer: str | None = None


# =============================================================================
# Aggregated Stats Models
# =============================================================================

class Granularity(str, Enum):
    HOUR = "hour"
    DAY = "day"


class Bucket(BaseModel):
    """One slot of a trend series."""
    key: str  # "2024-01-15" or "2024-01-15 13:00"
    views: int = 0
    visitors: int = 0


class DateRange(BaseModel):
    start: datetime
    end: datetime


class PeriodTotals(BaseModel):
    """Raw pageview counts for one window, straight from the store."""
    views: int = 0
    visitors: int = 0
    bounces: int = 0  # visitors with exactly one pageview


class PeriodMetrics(BaseModel):
    pageviews: int = 0
    visitors: int = 0
    bounce_rate: float = 0.0  # fraction, 0-1
    views_per_visitor: float = 0.0


class Deltas(BaseModel):
    """Signed percentage change against the previous period."""
    pageviews: float = 0.0
    visitors: float = 0.0
    bounce_rate: float = 0.0


class Overview(BaseModel):
    total_pageviews: int
    total_visitors: int
    bounce_rate: float
    views_per_visitor: float
    deltas: Deltas
    previous: PeriodMetrics


class BreakdownItem(BaseModel):
    name: str
    count: int


# =============================================================================
# Dashboard Response Models
# =============================================================================

class AnalyticsSnapshot(BaseModel):
    """Complete dashboard response for one site."""
    site_id: str
    date_range: DateRange
    granularity: Granularity
    overview: Overview
    chart: list[Bucket]

    top_pages: list[BreakdownItem]
    top_referrers: list[BreakdownItem]
    top_countries: list[BreakdownItem]
    top_devices: list[BreakdownItem]
    top_browsers: list[BreakdownItem]
    top_os: list[BreakdownItem]
    utm_sources: list[BreakdownItem]
    utm_campaigns: list[BreakdownItem]
    custom_events: list[BreakdownItem]


class SiteSummary(BaseModel):
    """Card data for the multi-site overview."""
    site_id: str
    domain: str
    created_at: datetime
    current_views: int = 0
    previous_views: int = 0
    current_visitors: int = 0
    delta: float = 0.0
    chart: list[Bucket] = []
