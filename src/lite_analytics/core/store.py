"""
Event store access.

The engine and ingestor only need a small capability from storage: look up
sites, append events, and answer group-by/count, distinct-count and
time-truncated queries over a site's events. ``EventStore`` spells that out;
``SQLEventStore`` implements it with parameterized SQLite-dialect SQL on top
of a single ``_query`` method, so any backend that can run SQLite SQL plugs
in by implementing ``_query``:

- ``D1EventStore``: Cloudflare D1 over its HTTP query API
- ``SQLiteEventStore``: a local SQLite file (self-hosting, development, tests)

Timestamps are stored as UTC text ("2024-01-15 13:05:09") so string
comparison is time comparison and strftime() truncates to bucket keys.
"""
import asyncio
import json
import os
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import httpx

from ..errors import StoreError
from .buckets import BUCKET_FORMATS, as_utc
from .models import Bucket, Event, EventKind, Granularity, PeriodTotals, Site

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


SCHEMA = """
CREATE TABLE IF NOT EXISTS sites (
    id TEXT PRIMARY KEY,
    domain TEXT NOT NULL UNIQUE,
    owner_id TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sites_owner ON sites (owner_id, created_at);

CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    site_id TEXT NOT NULL REFERENCES sites (id),
    type TEXT NOT NULL CHECK (type IN ('pageview', 'custom')),
    visitor_hash TEXT NOT NULL,
    pathname TEXT NOT NULL,
    hostname TEXT NOT NULL,
    referrer TEXT,
    country TEXT,
    browser TEXT NOT NULL DEFAULT 'Unknown',
    os TEXT NOT NULL DEFAULT 'Unknown',
    device TEXT NOT NULL DEFAULT 'desktop',
    screen_width INTEGER,
    language TEXT,
    utm_source TEXT,
    utm_medium TEXT,
    utm_campaign TEXT,
    utm_term TEXT,
    utm_content TEXT,
    event_name TEXT,
    properties TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_site_time ON events (site_id, created_at);

CREATE INDEX IF NOT EXISTS idx_events_site_type_time ON events (site_id, type, created_at);
"""

EVENT_COLUMNS = [
    "id", "site_id", "type", "visitor_hash", "pathname", "hostname",
    "referrer", "country", "browser", "os", "device", "screen_width", "language",
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "event_name", "properties", "created_at",
]

# Breakdown name -> (column, event kind it is restricted to, label for NULL).
# A NULL label of None means rows without a value are left out.
BREAKDOWNS: dict[str, tuple[str, Optional[EventKind], Optional[str]]] = {
    "page": ("pathname", EventKind.PAGEVIEW, None),
    "referrer": ("referrer", EventKind.PAGEVIEW, "Direct"),
    "country": ("country", None, "Unknown"),
    "device": ("device", None, "Unknown"),
    "browser": ("browser", None, "Unknown"),
    "os": ("os", None, "Unknown"),
    "utm_source": ("utm_source", EventKind.PAGEVIEW, None),
    "utm_campaign": ("utm_campaign", EventKind.PAGEVIEW, None),
    "event_name": ("event_name", EventKind.CUSTOM, None),
}


def format_timestamp(dt: datetime) -> str:
    return as_utc(dt).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value[:19], TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _site_from_row(row: dict) -> Site:
    return Site(
        id=row["id"],
        domain=row["domain"],
        owner_id=row["owner_id"],
        created_at=parse_timestamp(row["created_at"]),
    )


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


class EventStore(Protocol):
    """What the ingestor and the engine need from storage."""

    async def get_site(self, site_id: str) -> Optional[Site]: ...

    async def get_site_by_domain(self, domain: str) -> Optional[Site]: ...

    async def get_sites(self, site_ids: list[str]) -> list[Site]: ...

    async def list_sites(self, owner_id: str) -> list[Site]: ...

    async def create_site(self, site: Site) -> None: ...

    async def insert_event(self, event: Event) -> None: ...

    async def period_totals(
        self, site_id: str, start: datetime, end: datetime, end_inclusive: bool = True
    ) -> PeriodTotals: ...

    async def time_series(
        self, site_id: str, start: datetime, end: datetime, granularity: Granularity
    ) -> list[Bucket]: ...

    async def breakdown(
        self, site_id: str, name: str, start: datetime, end: datetime, limit: int
    ) -> list[dict[str, Any]]: ...

    async def distinct_visitors_since(self, site_id: str, since: datetime) -> int: ...

    async def site_totals(
        self, site_ids: list[str], split: datetime, since: datetime
    ) -> dict[str, dict[str, int]]: ...

    async def daily_views(self, site_ids: list[str], since: datetime) -> dict[str, list[Bucket]]: ...


class SQLEventStore:
    """EventStore over SQLite-dialect SQL. Subclasses implement ``_query``."""

    async def _query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        raise NotImplementedError

    async def _execute(self, sql: str, params: Optional[list] = None) -> None:
        """Execute a SQL statement without returning results."""
        await self._query(sql, params)

    async def migrate(self) -> None:
        """Create tables and indexes if they do not exist."""
        for statement in SCHEMA.split(";"):
            if statement.strip():
                await self._execute(statement)

    # =========================================================================
    # SITES
    # =========================================================================

    async def get_site(self, site_id: str) -> Optional[Site]:
        rows = await self._query("SELECT * FROM sites WHERE id = ?", [site_id])
        return _site_from_row(rows[0]) if rows else None

    async def get_site_by_domain(self, domain: str) -> Optional[Site]:
        rows = await self._query("SELECT * FROM sites WHERE domain = ?", [domain])
        return _site_from_row(rows[0]) if rows else None

    async def get_sites(self, site_ids: list[str]) -> list[Site]:
        if not site_ids:
            return []
        rows = await self._query(
            f"SELECT * FROM sites WHERE id IN ({_placeholders(site_ids)})",
            list(site_ids),
        )
        return [_site_from_row(r) for r in rows]

    async def list_sites(self, owner_id: str) -> list[Site]:
        rows = await self._query(
            "SELECT * FROM sites WHERE owner_id = ? ORDER BY created_at DESC, id ASC",
            [owner_id],
        )
        return [_site_from_row(r) for r in rows]

    async def create_site(self, site: Site) -> None:
        await self._execute(
            "INSERT INTO sites (id, domain, owner_id, created_at) VALUES (?, ?, ?, ?)",
            [site.id, site.domain, site.owner_id, format_timestamp(site.created_at)],
        )

    # =========================================================================
    # EVENTS
    # =========================================================================

    async def insert_event(self, event: Event) -> None:
        row = event.model_dump()
        row["type"] = event.kind.value
        row["created_at"] = format_timestamp(event.created_at)
        row["properties"] = json.dumps(event.properties) if event.properties is not None else None

        await self._execute(
            f"INSERT INTO events ({', '.join(EVENT_COLUMNS)}) VALUES ({_placeholders(EVENT_COLUMNS)})",
            [row[c] for c in EVENT_COLUMNS],
        )

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    async def period_totals(
        self,
        site_id: str,
        start: datetime,
        end: datetime,
        end_inclusive: bool = True,
    ) -> PeriodTotals:
        """Pageviews, distinct visitors and single-pageview visitors in a window."""
        end_op = "<=" if end_inclusive else "<"

        rows = await self._query(
            f"""
            SELECT
                COUNT(*) as visitors,
                COALESCE(SUM(cnt), 0) as views,
                COALESCE(SUM(CASE WHEN cnt = 1 THEN 1 ELSE 0 END), 0) as bounces
            FROM (
                SELECT visitor_hash, COUNT(*) as cnt
                FROM events
                WHERE site_id = ? AND type = 'pageview'
                    AND created_at >= ? AND created_at {end_op} ?
                GROUP BY visitor_hash
            )
            """,
            [site_id, format_timestamp(start), format_timestamp(end)],
        )

        data = rows[0] if rows else {}
        return PeriodTotals(
            views=data.get("views") or 0,
            visitors=data.get("visitors") or 0,
            bounces=data.get("bounces") or 0,
        )

    async def time_series(
        self,
        site_id: str,
        start: datetime,
        end: datetime,
        granularity: Granularity,
    ) -> list[Bucket]:
        """Pageviews and distinct visitors per bucket. Empty buckets are absent."""
        rows = await self._query(
            """
            SELECT
                strftime(?, created_at) as bucket,
                COUNT(*) as views,
                COUNT(DISTINCT visitor_hash) as visitors
            FROM events
            WHERE site_id = ? AND type = 'pageview'
                AND created_at >= ? AND created_at <= ?
            GROUP BY bucket
            ORDER BY bucket ASC
            """,
            [BUCKET_FORMATS[granularity], site_id, format_timestamp(start), format_timestamp(end)],
        )
        return [Bucket(key=r["bucket"], views=r["views"], visitors=r["visitors"]) for r in rows]

    async def breakdown(
        self,
        site_id: str,
        name: str,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Top values of one dimension by event count, ties by value."""
        column, kind, null_label = BREAKDOWNS[name]

        params: list = []
        if null_label is None:
            select = f"{column} as name"
            null_filter = f"AND {column} IS NOT NULL"
        else:
            select = f"COALESCE({column}, ?) as name"
            null_filter = ""
            params.append(null_label)

        params += [site_id, format_timestamp(start), format_timestamp(end)]
        kind_filter = ""
        if kind is not None:
            kind_filter = "AND type = ?"
            params.append(kind.value)
        params.append(limit)

        return await self._query(
            f"""
            SELECT {select}, COUNT(*) as count
            FROM events
            WHERE site_id = ? AND created_at >= ? AND created_at <= ?
                {kind_filter} {null_filter}
            GROUP BY name
            ORDER BY count DESC, name ASC
            LIMIT ?
            """,
            params,
        )

    async def distinct_visitors_since(self, site_id: str, since: datetime) -> int:
        rows = await self._query(
            """
            SELECT COUNT(DISTINCT visitor_hash) as count
            FROM events
            WHERE site_id = ? AND type = 'pageview' AND created_at >= ?
            """,
            [site_id, format_timestamp(since)],
        )
        return rows[0]["count"] if rows else 0

    async def site_totals(
        self,
        site_ids: list[str],
        split: datetime,
        since: datetime,
    ) -> dict[str, dict[str, int]]:
        """Current vs previous pageviews for many sites in one query.

        Events at or after ``split`` are current, events in [since, split)
        are previous.
        """
        if not site_ids:
            return {}

        split_ts = format_timestamp(split)
        rows = await self._query(
            f"""
            SELECT
                site_id,
                COALESCE(SUM(CASE WHEN created_at >= ? THEN 1 ELSE 0 END), 0) as current_views,
                COALESCE(SUM(CASE WHEN created_at < ? THEN 1 ELSE 0 END), 0) as previous_views,
                COUNT(DISTINCT CASE WHEN created_at >= ? THEN visitor_hash END) as current_visitors
            FROM events
            WHERE site_id IN ({_placeholders(site_ids)})
                AND type = 'pageview' AND created_at >= ?
            GROUP BY site_id
            """,
            [split_ts, split_ts, split_ts] + list(site_ids) + [format_timestamp(since)],
        )
        return {
            r["site_id"]: {
                "current_views": r["current_views"] or 0,
                "previous_views": r["previous_views"] or 0,
                "current_visitors": r["current_visitors"] or 0,
            }
            for r in rows
        }

    async def daily_views(self, site_ids: list[str], since: datetime) -> dict[str, list[Bucket]]:
        """Per-site daily buckets for many sites in one query."""
        if not site_ids:
            return {}

        rows = await self._query(
            f"""
            SELECT
                site_id,
                strftime(?, created_at) as bucket,
                COUNT(*) as views,
                COUNT(DISTINCT visitor_hash) as visitors
            FROM events
            WHERE site_id IN ({_placeholders(site_ids)})
                AND type = 'pageview' AND created_at >= ?
            GROUP BY site_id, bucket
            ORDER BY bucket ASC
            """,
            [BUCKET_FORMATS[Granularity.DAY]] + list(site_ids) + [format_timestamp(since)],
        )

        charts: dict[str, list[Bucket]] = {}
        for r in rows:
            charts.setdefault(r["site_id"], []).append(
                Bucket(key=r["bucket"], views=r["views"], visitors=r["visitors"])
            )
        return charts


# =============================================================================
# BACKENDS
# =============================================================================

class D1EventStore(SQLEventStore):
    """Store backed by a Cloudflare D1 database."""

    def __init__(
        self,
        d1_database_id: str,
        cf_account_id: str,
        cf_api_token: str,
        timeout: float = 30.0,
    ):
        self.database_id = d1_database_id
        self.account_id = cf_account_id
        self.api_token = cf_api_token
        self.timeout = timeout
        self.base_url = f"https://api.cloudflare.com/client/v4/accounts/{cf_account_id}/d1/database/{d1_database_id}"

    async def _query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        """Execute a SQL query against D1."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/query",
                    headers={
                        "Authorization": f"Bearer {self.api_token}",
                        "Content-Type": "application/json",
                    },
                    json={"sql": sql, "params": params or []},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StoreError(f"D1 request failed: {e}") from e

        if not isinstance(data, dict):
            raise StoreError("D1 returned an unexpected response body")
        if not data.get("success"):
            raise StoreError(f"D1 query failed: {data.get('errors')}")

        results = data.get("result", [])
        if results:
            return results[0].get("results", [])
        return []


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


class SQLiteEventStore(SQLEventStore):
    """Store backed by a local SQLite database.

    One connection shared by all requests; calls run in worker threads and
    take turns on a lock.
    """

    def __init__(self, path: str = ":memory:"):
        self.path = path
        if path != ":memory:":
            parent = os.path.dirname(os.path.abspath(path))
            os.makedirs(parent, exist_ok=True)

        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = _dict_factory
        self._lock = threading.Lock()

    def _run(self, sql: str, params: list) -> list[dict]:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                rows = cursor.fetchall()
                self._conn.commit()
            except (sqlite3.Error, OverflowError, ValueError) as e:
                self._conn.rollback()
                raise StoreError(f"SQLite query failed: {e}") from e
        return rows

    async def _query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        return await asyncio.to_thread(self._run, sql, params or [])

    def close(self) -> None:
        self._conn.close()
