"""
Site registration.
"""
import logging
import uuid
from datetime import datetime, timezone

from ..domain import normalize_domain
from ..errors import DomainAlreadyRegistered, InvalidDomain
from .models import Site
from .store import EventStore

logger = logging.getLogger(__name__)


async def register_site(
    store: EventStore,
    owner_id: str,
    raw_domain: str,
    now: datetime | None = None,
) -> Site:
    """Register a site under its canonical domain.

    The domain goes through the same normalization as inbound Origin
    headers, so "https://www.Example.com/" registers "example.com".

    Raises:
        InvalidDomain: If the domain cannot be normalized
        DomainAlreadyRegistered: If another site already owns the domain
    """
    domain = normalize_domain(raw_domain)
    if domain is None:
        raise InvalidDomain(domain=raw_domain)

    if await store.get_site_by_domain(domain) is not None:
        raise DomainAlreadyRegistered(domain=domain)

    site = Site(
        id=uuid.uuid4().hex,
        domain=domain,
        owner_id=owner_id,
        created_at=now or datetime.now(timezone.utc),
    )
    await store.create_site(site)
    logger.info(f"Registered site {site.id} for {domain}")
    return site
