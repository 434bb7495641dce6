"""Shared fixtures: an in-memory SQLite store with one registered site."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from lite_analytics.core.models import Site
from lite_analytics.core.store import SQLiteEventStore

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    store = SQLiteEventStore(":memory:")
    asyncio.run(store.migrate())
    yield store
    store.close()


@pytest.fixture
def site(store):
    site = Site(
        id="site-1",
        domain="example.com",
        owner_id="owner-1",
        created_at=NOW - timedelta(days=60),
    )
    asyncio.run(store.create_site(site))
    return site
