"""
Beacon ingestion.

Turns one beacon (raw body + trusted request metadata) into one immutable
event row. Every failure raises an IngestError subclass and leaves the store
untouched. Nothing here retries or deduplicates: a lost or doubled beacon is
an accepted property of fire-and-forget delivery.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, TypeVar

from ..domain import normalize_domain
from ..errors import (
    InvalidOrigin,
    InvalidPayload,
    MissingOrigin,
    PersistenceFailure,
    SiteNotRegistered,
    StoreError,
)
from ..fingerprint import VisitorFingerprinter, utc_now
from ..user_agent import parse_user_agent
from .buckets import as_utc
from .models import ClientContext, CollectPayload, Event, EventKind, Site
from .store import EventStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _blank_to_none(value: str | None) -> str | None:
    """Empty strings from the tracker mean "not set"."""
    if value is None or not value.strip():
        return None
    return value


def parse_payload(body: bytes | str | dict[str, Any]) -> CollectPayload:
    """Validate a beacon body.

    Bytes and strings are parsed as strict JSON whatever content type the
    request declared; the tracker sends text/plain to avoid a CORS preflight.

    Raises:
        InvalidPayload: Unparseable JSON or schema violation
    """
    try:
        if isinstance(body, (bytes, str)):
            return CollectPayload.model_validate_json(body)
        return CollectPayload.model_validate(body)
    except ValueError as e:
        logger.debug(f"Rejected beacon payload: {e}")
        raise InvalidPayload() from e


class EventIngestor:
    """Validates beacons, resolves their site and writes event rows."""

    def __init__(
        self,
        store: EventStore,
        fingerprinter: VisitorFingerprinter,
        clock: Callable[[], datetime] = utc_now,
        timeout: float = 5.0,
    ):
        self.store = store
        self.fingerprinter = fingerprinter
        self.clock = clock
        self.timeout = timeout
        self._last_timestamp: datetime | None = None

    async def _store_call(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except (StoreError, asyncio.TimeoutError) as e:
            logger.error(f"Event store unavailable during ingest: {e!r}", exc_info=True)
            raise PersistenceFailure() from e

    def _now(self) -> datetime:
        """Server timestamp, never earlier than the previous one."""
        now = as_utc(self.clock())
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    async def resolve_site(self, website_id: str | None, context: ClientContext) -> Site:
        """
        Find the site a beacon belongs to.

        An explicit website_id wins. Otherwise, or if the id is unknown, the
        Origin header (falling back to Referer) is normalized and looked up
        by domain. Origin is client-supplied; that trust boundary is the same
        one any public beacon endpoint has.

        Raises:
            MissingOrigin: No website_id and no Origin/Referer
            InvalidOrigin: Origin/Referer cannot be parsed
            SiteNotRegistered: Nothing matches the id or the domain
        """
        website_id = _blank_to_none(website_id)
        if website_id:
            site = await self._store_call(self.store.get_site(website_id))
            if site is not None:
                return site

        header = _blank_to_none(context.origin) or _blank_to_none(context.referer)
        if header is None:
            if website_id:
                logger.info(f"Website not found for id: {website_id}")
                raise SiteNotRegistered(website_id=website_id)
            raise MissingOrigin()

        domain = normalize_domain(header)
        if domain is None:
            raise InvalidOrigin()

        site = await self._store_call(self.store.get_site_by_domain(domain))
        if site is None:
            logger.info(f"Website not found for domain: {domain}")
            raise SiteNotRegistered(domain=domain)
        return site

    def build_event(self, payload: CollectPayload, site: Site, context: ClientContext) -> Event:
        """Attach fingerprint, client metadata and a server timestamp."""
        now = self._now()
        ua = parse_user_agent(context.user_agent)
        is_custom = payload.type == EventKind.CUSTOM
        country = _blank_to_none(context.country)

        return Event(
            id=uuid.uuid4().hex,
            site_id=site.id,
            kind=payload.type,
            visitor_hash=self.fingerprinter.fingerprint(
                context.ip, context.user_agent, site.id, day=now.date()
            ),
            pathname=payload.pathname,
            hostname=_blank_to_none(payload.hostname) or site.domain,
            referrer=_blank_to_none(payload.referrer),
            country=country.upper() if country else None,
            browser=ua.browser,
            os=ua.os,
            device=ua.device.value,
            screen_width=int(payload.screen_width) if payload.screen_width is not None else None,
            language=_blank_to_none(payload.language),
            utm_source=_blank_to_none(payload.utm_source),
            utm_medium=_blank_to_none(payload.utm_medium),
            utm_campaign=_blank_to_none(payload.utm_campaign),
            utm_term=_blank_to_none(payload.utm_term),
            utm_content=_blank_to_none(payload.utm_content),
            event_name=_blank_to_none(payload.event_name) if is_custom else None,
            properties=payload.properties if is_custom else None,
            created_at=now,
        )

    async def ingest(self, body: bytes | str | dict[str, Any], context: ClientContext) -> Event:
        """
        Ingest one beacon.

        Args:
            body: Raw request body (or an already-decoded dict)
            context: Metadata from trusted request headers

        Returns:
            The stored event

        Raises:
            InvalidPayload, MissingOrigin, InvalidOrigin, SiteNotRegistered,
            PersistenceFailure
        """
        payload = parse_payload(body)
        site = await self.resolve_site(payload.website_id, context)
        event = self.build_event(payload, site, context)
        await self._store_call(self.store.insert_event(event))
        return event
