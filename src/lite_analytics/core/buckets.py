"""
Time bucketing for trend charts.

The store only returns buckets that had traffic. Charts need every slot
between the start and end of the range, in order, so the missing ones are
filled with zeros here. Keys sort lexicographically in time order.
"""
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone

from .models import Bucket, Granularity

BUCKET_FORMATS = {
    Granularity.HOUR: "%Y-%m-%d %H:00",
    Granularity.DAY: "%Y-%m-%d",
}

BUCKET_STEPS = {
    Granularity.HOUR: timedelta(hours=1),
    Granularity.DAY: timedelta(days=1),
}

# Windows up to this long are charted by the hour
HOURLY_MAX_SPAN = timedelta(hours=24)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def floor_to_granularity(dt: datetime, granularity: Granularity) -> datetime:
    dt = as_utc(dt)
    if granularity == Granularity.HOUR:
        return dt.replace(minute=0, second=0, microsecond=0)
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def bucket_key(dt: datetime, granularity: Granularity) -> str:
    return as_utc(dt).strftime(BUCKET_FORMATS[granularity])


def granularity_for(start: datetime, end: datetime, period: str | None = None) -> Granularity:
    """Pick the chart granularity.

    A "24h" period is charted hourly, any other preset daily. Without a
    preset the span decides.
    """
    if period is not None:
        return Granularity.HOUR if period == "24h" else Granularity.DAY
    if as_utc(end) - as_utc(start) <= HOURLY_MAX_SPAN:
        return Granularity.HOUR
    return Granularity.DAY


def _to_bucket(raw: Bucket | Mapping) -> Bucket:
    if isinstance(raw, Bucket):
        return raw
    return Bucket(key=raw["key"], views=raw.get("views") or 0, visitors=raw.get("visitors") or 0)


def fill_gaps(
    raw_buckets: Iterable[Bucket | Mapping],
    start: datetime,
    end: datetime,
    granularity: Granularity,
) -> list[Bucket]:
    """
    Build the complete, ordered bucket series for [start, end].

    Args:
        raw_buckets: Buckets that had data, keyed with BUCKET_FORMATS
        start: Range start; floored to the granularity
        end: Range end; floored to the granularity and included
        granularity: hour or day

    Returns:
        One bucket per step, ascending. Empty if start is after end.
    """
    if as_utc(start) > as_utc(end):
        return []

    by_key = {b.key: b for b in map(_to_bucket, raw_buckets)}

    current = floor_to_granularity(start, granularity)
    last = floor_to_granularity(end, granularity)
    step = BUCKET_STEPS[granularity]

    result: list[Bucket] = []
    while current <= last:
        key = bucket_key(current, granularity)
        result.append(by_key.get(key) or Bucket(key=key))
        current += step
    return result
