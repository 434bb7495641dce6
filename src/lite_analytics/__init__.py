"""
Cookieless, privacy-first web analytics.

Usage:
    from lite_analytics import AnalyticsConfig, setup_analytics

    analytics = setup_analytics(AnalyticsConfig(
        fingerprint_salt="a-long-random-secret",
        database_path="analytics.db",
        public_url="https://stats.example.com",
    ))
    await analytics.migrate()

    # Public beacon endpoint + tracker.js
    app.include_router(analytics.collect_router)

    # JSON stats, behind your own auth
    app.include_router(analytics.stats_router, prefix="/admin/analytics")

    # In templates: {{ analytics.tracking_script() }}
"""

from datetime import timedelta

from .config import AnalyticsConfig, create_store
from .core.engine import AnalyticsEngine
from .core.ingest import EventIngestor
from .core.models import AnalyticsSnapshot, DateRange, Event, Site, SiteSummary
from .core.sites import register_site
from .errors import AnalyticsError, ConfigError
from .fingerprint import VisitorFingerprinter
from .routes import create_collect_router, create_stats_router
from .tracker import tracking_script

__version__ = "0.1.0"
__all__ = [
    "setup_analytics", "Analytics", "AnalyticsConfig",
    "AnalyticsEngine", "EventIngestor", "VisitorFingerprinter",
    "AnalyticsSnapshot", "DateRange", "Event", "Site", "SiteSummary",
    "AnalyticsError", "ConfigError",
]


class Analytics:
    """Main analytics interface: one store, one ingestor, one engine."""

    def __init__(self, config: AnalyticsConfig):
        self.config = config
        self.store = create_store(config)
        self.fingerprinter = VisitorFingerprinter(config.fingerprint_salt)
        self.ingestor = EventIngestor(
            self.store,
            self.fingerprinter,
            timeout=config.ingest_timeout_seconds,
        )
        self.engine = AnalyticsEngine(
            self.store,
            timeout=config.query_timeout_seconds,
            live_window=timedelta(minutes=config.live_window_minutes),
            summary_window=timedelta(days=config.summary_window_days),
        )
        self.collect_router = create_collect_router(self.ingestor, config)
        self.stats_router = create_stats_router(self.engine)

    async def migrate(self) -> None:
        """Create tables and indexes if they do not exist."""
        await self.store.migrate()

    async def register_site(self, owner_id: str, domain: str) -> Site:
        return await register_site(self.store, owner_id, domain)

    async def summarize_owner_sites(self, owner_id: str) -> list[SiteSummary]:
        """Summary cards for every site an owner has, newest first."""
        return await self.engine.summarize_owner_sites(owner_id)

    def tracking_script(self, website_id: str | None = None) -> str:
        """Generate the tracking <script> tag for templates.

        Without a website_id the collector resolves the site from the
        page's Origin header.
        """
        base = self.config.public_url.rstrip("/")
        return tracking_script(
            f"{base}/tracker.js",
            website_id=website_id,
            host=base or None,
            endpoint=self.config.collect_path,
        )


def setup_analytics(config: AnalyticsConfig | None = None) -> Analytics:
    """
    Set up analytics.

    Args:
        config: Analytics configuration. Read from LITE_ANALYTICS_*
                environment variables when omitted.

    Returns:
        Analytics instance with collect_router, stats_router and
        tracking_script()
    """
    return Analytics(config or AnalyticsConfig.from_env())
