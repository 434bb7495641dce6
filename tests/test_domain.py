"""Tests for domain normalization."""

import pytest

from lite_analytics.domain import normalize_domain


class TestNormalizeDomain:
    """Test canonical domain extraction."""

    def test_full_url(self):
        assert normalize_domain("https://www.Example.com/") == "example.com"

    def test_origin_header(self):
        assert normalize_domain("https://shop.example.com") == "shop.example.com"

    def test_referer_with_path_and_query(self):
        assert normalize_domain("https://example.com/pricing?plan=pro#faq") == "example.com"

    def test_port_is_dropped(self):
        assert normalize_domain("http://localhost:3000") == "localhost"

    def test_bare_host(self):
        assert normalize_domain("Example.COM") == "example.com"

    def test_bare_host_with_trailing_slash(self):
        assert normalize_domain("www.example.com/") == "example.com"

    def test_only_one_www_is_stripped(self):
        assert normalize_domain("www.www.example.com") == "www.example.com"

    def test_www_inside_name_is_kept(self):
        assert normalize_domain("wwwexample.com") == "wwwexample.com"

    def test_surrounding_whitespace(self):
        assert normalize_domain("  https://example.com  ") == "example.com"

    @pytest.mark.parametrize("raw", [None, "", "   ", "https://", "http:///path", "null://"])
    def test_unusable_values(self, raw):
        assert normalize_domain(raw) is None

    def test_bare_www_is_empty(self):
        assert normalize_domain("www.") is None

    def test_normalized_value_is_stable(self):
        """Normalizing a canonical domain again changes nothing."""
        once = normalize_domain("https://WWW.Example.com/")
        assert normalize_domain(once) == once

    def test_registration_and_origin_agree(self):
        """A registered domain and the Origin of its pages normalize alike."""
        assert normalize_domain("example.com") == normalize_domain("https://www.example.com")
