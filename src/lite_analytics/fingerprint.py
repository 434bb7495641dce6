"""
Daily-rotating visitor fingerprints.

We never store IP addresses or user-agents against a visitor. Instead each
event carries a SHA-256 digest of (ip, user-agent, site id, UTC date, salt).
The same browser hitting the same site on the same day gets the same hash,
which is enough for unique-visitor and bounce counts. Tomorrow, or on another
site, it gets an unrelated one.

Fields are length-prefixed before hashing so that no two different
(ip, user-agent) pairs can share a preimage, whatever characters they hold.
"""
import hashlib
from datetime import date, datetime, timezone
from typing import Callable

from .errors import ConfigError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _encode_fields(*fields: str) -> bytes:
    return "".join(f"{len(field)}:{field}" for field in fields).encode("utf-8")


class VisitorFingerprinter:
    """Computes visitor hashes with an injected secret salt."""

    def __init__(self, salt: str, clock: Callable[[], datetime] = utc_now):
        if not salt:
            raise ConfigError("Fingerprint salt must not be empty")
        self._salt = salt
        self._clock = clock

    def fingerprint(
        self,
        ip: str,
        user_agent: str,
        site_id: str,
        day: date | None = None,
    ) -> str:
        """
        Return the visitor hash for one request.

        Args:
            ip: Client network address
            user_agent: Raw User-Agent header
            site_id: Resolved site identifier
            day: UTC calendar day; defaults to today per the clock

        Returns:
            64-character lowercase hex digest
        """
        if day is None:
            day = self._clock().astimezone(timezone.utc).date()

        preimage = _encode_fields(ip, user_agent, site_id, day.isoformat(), self._salt)
        return hashlib.sha256(preimage).hexdigest()
