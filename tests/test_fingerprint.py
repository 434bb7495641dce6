"""Tests for daily-rotating visitor fingerprints."""

from datetime import date, datetime, timedelta, timezone

import pytest

from lite_analytics.errors import ConfigError
from lite_analytics.fingerprint import VisitorFingerprinter

SALT = "test-salt-0123456789abcdef"
UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
DAY = date(2026, 3, 14)


class TestFingerprint:
    """Test hash stability and separation."""

    def test_hex_digest(self):
        fp = VisitorFingerprinter(SALT).fingerprint("203.0.113.7", UA, "site-1", day=DAY)
        assert len(fp) == 64
        assert fp == fp.lower()
        int(fp, 16)

    def test_same_inputs_same_hash(self):
        a = VisitorFingerprinter(SALT).fingerprint("203.0.113.7", UA, "site-1", day=DAY)
        b = VisitorFingerprinter(SALT).fingerprint("203.0.113.7", UA, "site-1", day=DAY)
        assert a == b

    def test_rotates_daily(self):
        fp = VisitorFingerprinter(SALT)
        assert fp.fingerprint("203.0.113.7", UA, "site-1", day=DAY) != fp.fingerprint(
            "203.0.113.7", UA, "site-1", day=date(2026, 3, 15)
        )

    def test_differs_per_site(self):
        fp = VisitorFingerprinter(SALT)
        assert fp.fingerprint("203.0.113.7", UA, "site-1", day=DAY) != fp.fingerprint(
            "203.0.113.7", UA, "site-2", day=DAY
        )

    def test_differs_per_salt(self):
        a = VisitorFingerprinter(SALT).fingerprint("203.0.113.7", UA, "site-1", day=DAY)
        b = VisitorFingerprinter(SALT + "x").fingerprint("203.0.113.7", UA, "site-1", day=DAY)
        assert a != b

    def test_field_boundaries_do_not_collide(self):
        """Moving characters between ip and user-agent changes the hash."""
        fp = VisitorFingerprinter(SALT)
        assert fp.fingerprint("1.2.3.4", "5Mozilla", "s", day=DAY) != fp.fingerprint(
            "1.2.3.45", "Mozilla", "s", day=DAY
        )

    def test_does_not_contain_inputs(self):
        fp = VisitorFingerprinter(SALT).fingerprint("203.0.113.7", UA, "site-1", day=DAY)
        assert "203.0.113.7" not in fp

    def test_day_defaults_to_utc_clock(self):
        """Late evening west of UTC already counts as the next UTC day."""
        clock = lambda: datetime(2026, 3, 14, 20, 0, tzinfo=timezone(timedelta(hours=-5)))
        fp = VisitorFingerprinter(SALT, clock=clock)
        assert fp.fingerprint("203.0.113.7", UA, "site-1") == fp.fingerprint(
            "203.0.113.7", UA, "site-1", day=date(2026, 3, 15)
        )

    @pytest.mark.parametrize("salt", ["", None])
    def test_empty_salt_rejected(self, salt):
        with pytest.raises(ConfigError):
            VisitorFingerprinter(salt)
