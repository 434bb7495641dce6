"""Tests for stats date range parsing."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from lite_analytics.core.buckets import granularity_for
from lite_analytics.core.models import Granularity
from lite_analytics.routes.stats import _parse_range

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


class TestPresetDateRanges:
    """Test preset period parsing."""

    def test_24h_period(self):
        """24h preset ends now and starts a day earlier."""
        date_range, preset = _parse_range("24h", now=NOW)

        assert date_range.end == NOW
        assert date_range.start == NOW - timedelta(days=1)
        assert preset == "24h"

    def test_7d_period(self):
        date_range, preset = _parse_range("7d", now=NOW)

        assert date_range.start == NOW - timedelta(days=7)
        assert preset == "7d"

    def test_90d_period(self):
        date_range, _ = _parse_range("90d", now=NOW)
        assert date_range.start == NOW - timedelta(days=90)

    def test_no_period_defaults_to_30d(self):
        date_range, preset = _parse_range(None, now=NOW)

        assert date_range.start == NOW - timedelta(days=30)
        assert preset is None

    def test_unknown_period_defaults_to_30d(self):
        date_range, preset = _parse_range("fortnight", now=NOW)

        assert date_range.start == NOW - timedelta(days=30)
        assert preset is None


class TestCustomDateRanges:
    """Test custom start/end parsing."""

    def test_whole_days(self):
        """Custom ranges run from the start of the first day to the end of the last."""
        date_range, preset = _parse_range("custom", "2026-01-01", "2026-01-07", now=NOW)

        assert date_range.start == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert date_range.end == datetime(2026, 1, 7, 23, 59, 59, tzinfo=timezone.utc)
        assert preset is None

    def test_dates_imply_custom(self):
        date_range, _ = _parse_range("7d", "2026-01-01", "2026-01-07", now=NOW)
        assert date_range.start == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_single_day_is_charted_hourly(self):
        date_range, preset = _parse_range(None, "2026-03-01", "2026-03-01", now=NOW)
        assert granularity_for(date_range.start, date_range.end, preset) == Granularity.HOUR

    def test_end_today_allowed(self):
        date_range, _ = _parse_range(None, "2026-03-10", "2026-03-14", now=NOW)
        assert date_range.end.date() == NOW.date()

    def test_missing_end(self):
        with pytest.raises(HTTPException) as exc:
            _parse_range("custom", "2026-01-01", None, now=NOW)
        assert exc.value.status_code == 400

    def test_missing_start(self):
        with pytest.raises(HTTPException) as exc:
            _parse_range(None, None, "2026-01-01", now=NOW)
        assert exc.value.status_code == 400

    def test_invalid_format(self):
        with pytest.raises(HTTPException) as exc:
            _parse_range("custom", "01/01/2026", "2026-01-07", now=NOW)
        assert exc.value.status_code == 400
        assert "YYYY-MM-DD" in exc.value.detail

    def test_end_before_start(self):
        with pytest.raises(HTTPException) as exc:
            _parse_range("custom", "2026-01-07", "2026-01-01", now=NOW)
        assert exc.value.status_code == 400

    def test_future_end(self):
        with pytest.raises(HTTPException) as exc:
            _parse_range("custom", "2026-03-10", "2026-03-15", now=NOW)
        assert exc.value.status_code == 400
        assert "future" in exc.value.detail
