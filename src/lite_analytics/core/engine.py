"""
Aggregation engine: event log -> dashboard numbers.

Every read is a set of independent store queries run concurrently and joined
before the response is built. A snapshot is all-or-nothing: if any query
fails or the whole set exceeds the timeout, the caller gets one
AggregationError and no partial data.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from ..errors import AggregationError, StoreError
from ..fingerprint import utc_now
from .buckets import as_utc, fill_gaps, granularity_for
from .models import (
    AnalyticsSnapshot,
    BreakdownItem,
    DateRange,
    Deltas,
    Granularity,
    Overview,
    PeriodMetrics,
    PeriodTotals,
    SiteSummary,
)
from .store import EventStore

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"24h": 1, "7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "30d"

# Snapshot field -> (breakdown, how many rows to keep)
SNAPSHOT_BREAKDOWNS = {
    "top_pages": ("page", 10),
    "top_referrers": ("referrer", 10),
    "top_countries": ("country", 10),
    "top_devices": ("device", 5),
    "top_browsers": ("browser", 5),
    "top_os": ("os", 5),
    "utm_sources": ("utm_source", 10),
    "utm_campaigns": ("utm_campaign", 10),
    "custom_events": ("event_name", 10),
}


def period_range(period: str | None, now: datetime | None = None) -> DateRange:
    """Preset period ("24h", "7d", "30d", "90d") ending now. Unknown -> 30d."""
    end = as_utc(now or utc_now())
    days = PERIOD_DAYS.get(period or DEFAULT_PERIOD, PERIOD_DAYS[DEFAULT_PERIOD])
    return DateRange(start=end - timedelta(days=days), end=end)


def delta(current: float, previous: float) -> float:
    """Percentage change from previous to current.

    0 when both are 0, 100 when growing from 0.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return ((current - previous) / previous) * 100


def period_metrics(totals: PeriodTotals) -> PeriodMetrics:
    visitors = totals.visitors
    return PeriodMetrics(
        pageviews=totals.views,
        visitors=visitors,
        bounce_rate=totals.bounces / visitors if visitors else 0.0,
        views_per_visitor=totals.views / visitors if visitors else 0.0,
    )


class AnalyticsEngine:
    """Computes snapshots, the live gauge and multi-site summaries."""

    def __init__(
        self,
        store: EventStore,
        clock: Callable[[], datetime] = utc_now,
        timeout: float = 30.0,
        live_window: timedelta = timedelta(minutes=5),
        summary_window: timedelta = timedelta(days=7),
    ):
        self.store = store
        self.clock = clock
        self.timeout = timeout
        self.live_window = live_window
        self.summary_window = summary_window

    async def _parallel_queries(self, label: str, **queries: Awaitable[Any]) -> dict[str, Any]:
        """Run named queries concurrently; fail as a whole.

        Pending queries are cancelled when one fails, on timeout, or when
        the caller goes away.
        """
        tasks = {name: asyncio.ensure_future(query) for name, query in queries.items()}
        try:
            await asyncio.wait_for(asyncio.gather(*tasks.values()), timeout=self.timeout)
        except (StoreError, asyncio.TimeoutError) as e:
            logger.error(f"Analytics queries failed for {label}: {e!r}")
            raise AggregationError() from e
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()
                elif not task.cancelled():
                    # Mark sibling failures as retrieved; the first one was raised
                    task.exception()

        return {name: task.result() for name, task in tasks.items()}

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def compute_analytics(
        self,
        site_id: str,
        date_range: DateRange,
        period: str | None = None,
    ) -> AnalyticsSnapshot:
        """
        Build the full dashboard snapshot for one site.

        The current window is [start, end]. It is compared against the
        window of the same length right before it, [start - length, start),
        which is half-open so the boundary instant is not counted twice.

        Args:
            site_id: Site to report on
            date_range: Window to report on
            period: Preset the range came from; "24h" charts hourly

        Raises:
            AggregationError: Any query failed or timed out
        """
        start, end = as_utc(date_range.start), as_utc(date_range.end)
        prev_start, prev_end = start - (end - start), start
        granularity = granularity_for(start, end, period)

        queries = {
            "current": self.store.period_totals(site_id, start, end),
            "previous": self.store.period_totals(site_id, prev_start, prev_end, end_inclusive=False),
            "chart": self.store.time_series(site_id, start, end, granularity),
        }
        for field, (name, limit) in SNAPSHOT_BREAKDOWNS.items():
            queries[field] = self.store.breakdown(site_id, name, start, end, limit)

        results = await self._parallel_queries(f"site {site_id}", **queries)

        current = period_metrics(results["current"])
        previous = period_metrics(results["previous"])

        overview = Overview(
            total_pageviews=current.pageviews,
            total_visitors=current.visitors,
            bounce_rate=current.bounce_rate,
            views_per_visitor=current.views_per_visitor,
            deltas=Deltas(
                pageviews=delta(current.pageviews, previous.pageviews),
                visitors=delta(current.visitors, previous.visitors),
                bounce_rate=delta(current.bounce_rate, previous.bounce_rate),
            ),
            previous=previous,
        )

        breakdowns = {
            field: [BreakdownItem(name=r["name"], count=r["count"]) for r in results[field]]
            for field in SNAPSHOT_BREAKDOWNS
        }

        return AnalyticsSnapshot(
            site_id=site_id,
            date_range=DateRange(start=start, end=end),
            granularity=granularity,
            overview=overview,
            chart=fill_gaps(results["chart"], start, end, granularity),
            **breakdowns,
        )

    # =========================================================================
    # REALTIME
    # =========================================================================

    async def count_live_visitors(self, site_id: str) -> int:
        """Distinct visitors with a pageview in the trailing live window."""
        since = as_utc(self.clock()) - self.live_window
        results = await self._parallel_queries(
            f"live visitors of {site_id}",
            live=self.store.distinct_visitors_since(site_id, since),
        )
        return results["live"]

    # =========================================================================
    # MULTI-SITE SUMMARY
    # =========================================================================

    async def summarize_sites(self, site_ids: list[str]) -> list[SiteSummary]:
        """
        Trailing-window cards for several sites.

        Query count does not grow with the number of sites: one site lookup,
        one batched totals query, one batched chart query. Unknown ids are
        skipped; the order of ``site_ids`` is kept.
        """
        ids = list(dict.fromkeys(site_ids))
        if not ids:
            return []

        now = as_utc(self.clock())
        split = now - self.summary_window
        since = split - self.summary_window

        results = await self._parallel_queries(
            "site summary",
            sites=self.store.get_sites(ids),
            totals=self.store.site_totals(ids, split, since),
            charts=self.store.daily_views(ids, split),
        )
        sites = {site.id: site for site in results["sites"]}

        summaries = []
        for site_id in ids:
            site = sites.get(site_id)
            if site is None:
                continue

            totals = results["totals"].get(site_id, {})
            current_views = totals.get("current_views", 0)
            previous_views = totals.get("previous_views", 0)

            summaries.append(SiteSummary(
                site_id=site.id,
                domain=site.domain,
                created_at=site.created_at,
                current_views=current_views,
                previous_views=previous_views,
                current_visitors=totals.get("current_visitors", 0),
                delta=delta(current_views, previous_views),
                chart=fill_gaps(results["charts"].get(site_id, []), split, now, Granularity.DAY),
            ))
        return summaries

    async def summarize_owner_sites(self, owner_id: str) -> list[SiteSummary]:
        """Summaries for every site an owner has, newest first."""
        try:
            sites = await asyncio.wait_for(self.store.list_sites(owner_id), timeout=self.timeout)
        except (StoreError, asyncio.TimeoutError) as e:
            logger.error(f"Listing sites failed for owner {owner_id}: {e!r}")
            raise AggregationError() from e
        return await self.summarize_sites([site.id for site in sites])
