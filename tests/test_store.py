"""Tests for the SQL event store."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from lite_analytics.core.engine import AnalyticsEngine, period_range
from lite_analytics.core.models import Event, EventKind, Site
from lite_analytics.core.store import D1EventStore, format_timestamp, parse_timestamp
from lite_analytics.errors import AggregationError, StoreError

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class TestTimestamps:
    """Test the stored timestamp format."""

    def test_format_is_utc_text(self):
        local = datetime(2026, 3, 14, 7, 30, 15, 999, tzinfo=timezone(timedelta(hours=-5)))
        assert format_timestamp(local) == "2026-03-14 12:30:15"

    def test_naive_is_utc(self):
        assert format_timestamp(datetime(2026, 3, 14, 12, 0)) == "2026-03-14 12:00:00"

    def test_parse(self):
        assert parse_timestamp("2026-03-14 12:00:00") == NOW


class TestSites:
    """Test site lookups."""

    def test_lookups(self, store, site):
        assert run_async(store.get_site(site.id)) == site
        assert run_async(store.get_site_by_domain("example.com")) == site
        assert run_async(store.get_site("missing")) is None
        assert run_async(store.get_site_by_domain("missing.com")) is None

    def test_get_sites(self, store, site):
        assert run_async(store.get_sites([site.id, "missing"])) == [site]
        assert run_async(store.get_sites([])) == []

    def test_duplicate_domain_is_store_error(self, store, site):
        dup = Site(id="site-9", domain="example.com", owner_id="owner-2", created_at=NOW)
        with pytest.raises(StoreError):
            run_async(store.create_site(dup))

    def test_store_usable_after_error(self, store, site):
        dup = Site(id=site.id, domain="other.com", owner_id="owner-2", created_at=NOW)
        with pytest.raises(StoreError):
            run_async(store.create_site(dup))
        assert run_async(store.get_site(site.id)) == site


class TestEmptyAggregates:
    """Test aggregates over a site with no events."""

    def test_period_totals(self, store, site):
        totals = run_async(store.period_totals(site.id, NOW - timedelta(days=7), NOW))
        assert (totals.views, totals.visitors, totals.bounces) == (0, 0, 0)

    def test_batched_queries_with_no_ids(self, store):
        assert run_async(store.site_totals([], NOW, NOW)) == {}
        assert run_async(store.daily_views([], NOW)) == {}

    def test_breakdown(self, store, site):
        assert run_async(store.breakdown(site.id, "page", NOW - timedelta(days=7), NOW, 10)) == []

    def test_migrate_is_idempotent(self, store):
        run_async(store.migrate())


class TestDriverErrors:
    """Test that driver-level failures surface as StoreError."""

    def test_integer_overflow(self, store, site):
        event = Event(
            id=uuid.uuid4().hex,
            site_id=site.id,
            kind=EventKind.PAGEVIEW,
            visitor_hash="v1",
            pathname="/",
            hostname="example.com",
            created_at=NOW,
            screen_width=10 ** 30,
        )
        with pytest.raises(StoreError):
            run_async(store.insert_event(event))
        assert run_async(store._query("SELECT * FROM events")) == []


class TestD1EventStore:
    """Test D1 transport failures."""

    def _store(self):
        return D1EventStore(d1_database_id="db", cf_account_id="acct", cf_api_token="token")

    def _reply(self, status_code, **kwargs):
        request = httpx.Request("POST", "https://api.cloudflare.com/query")
        return httpx.Response(status_code, request=request, **kwargs)

    def test_rows(self, monkeypatch):
        reply = self._reply(200, json={"success": True, "result": [{"results": [{"count": 3}]}]})
        monkeypatch.setattr(httpx.AsyncClient, "post", AsyncMock(return_value=reply))

        assert run_async(self._store()._query("SELECT 1")) == [{"count": 3}]

    def test_non_json_reply(self, monkeypatch):
        reply = self._reply(200, text="<html>gateway</html>")
        monkeypatch.setattr(httpx.AsyncClient, "post", AsyncMock(return_value=reply))

        with pytest.raises(StoreError):
            run_async(self._store()._query("SELECT 1"))

    def test_unexpected_json_shape(self, monkeypatch):
        reply = self._reply(200, json=["not", "an", "object"])
        monkeypatch.setattr(httpx.AsyncClient, "post", AsyncMock(return_value=reply))

        with pytest.raises(StoreError):
            run_async(self._store()._query("SELECT 1"))

    def test_query_failure(self, monkeypatch):
        reply = self._reply(200, json={"success": False, "errors": [{"message": "no such table"}]})
        monkeypatch.setattr(httpx.AsyncClient, "post", AsyncMock(return_value=reply))

        with pytest.raises(StoreError, match="no such table"):
            run_async(self._store()._query("SELECT 1"))

    def test_http_error(self, monkeypatch):
        monkeypatch.setattr(httpx.AsyncClient, "post", AsyncMock(return_value=self._reply(502, text="bad gateway")))

        with pytest.raises(StoreError):
            run_async(self._store()._query("SELECT 1"))

    def test_non_json_reply_fails_snapshot_as_a_whole(self, monkeypatch):
        reply = self._reply(200, text="<html>gateway</html>")
        monkeypatch.setattr(httpx.AsyncClient, "post", AsyncMock(return_value=reply))
        engine = AnalyticsEngine(self._store())

        with pytest.raises(AggregationError):
            run_async(engine.compute_analytics("site-1", period_range("7d", NOW), "7d"))
