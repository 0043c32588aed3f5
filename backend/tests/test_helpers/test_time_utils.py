"""
Tests for time utility functions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from helpers.time_utils import (
    ensure_utc,
    format_iso8601,
    hours_between,
    to_naive_utc,
    utc_now,
)


class TestUtcNow:
    def test_is_naive(self):
        assert utc_now().tzinfo is None

    def test_matches_wall_clock(self):
        delta = datetime.now(timezone.utc).replace(tzinfo=None) - utc_now()
        assert abs(delta.total_seconds()) < 5


class TestConversions:
    def test_ensure_utc_naive(self):
        result = ensure_utc(datetime(2024, 1, 15, 10, 30))
        assert result.tzinfo == timezone.utc
        assert result.hour == 10

    def test_ensure_utc_converts_offset(self):
        pkt = timezone(timedelta(hours=5))
        result = ensure_utc(datetime(2024, 1, 15, 15, 30, tzinfo=pkt))
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_to_naive_utc(self):
        pkt = timezone(timedelta(hours=5))
        assert to_naive_utc(datetime(2024, 1, 15, 15, 30, tzinfo=pkt)) == datetime(
            2024, 1, 15, 10, 30
        )


class TestFormatIso8601:
    def test_naive_utc(self):
        dt = datetime(2024, 1, 15, 10, 30, 0)
        assert format_iso8601(dt) == "2024-01-15T10:30:00.000000Z"

    def test_keeps_microseconds(self):
        dt = datetime(2024, 1, 15, 10, 30, 0, 42)
        assert format_iso8601(dt) == "2024-01-15T10:30:00.000042Z"

    def test_aware_non_utc(self):
        dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert format_iso8601(dt) == "2024-01-15T15:30:00.000000Z"


class TestHoursBetween:
    def test_positive(self):
        earlier = datetime(2024, 1, 1, 0, 0)
        assert hours_between(earlier, earlier + timedelta(hours=30)) == pytest.approx(30)

    def test_mixed_naive_and_aware(self):
        earlier = datetime(2024, 1, 1, 0, 0)
        later = datetime(2024, 1, 1, 6, 0, tzinfo=timezone.utc)
        assert hours_between(earlier, later) == pytest.approx(6)

    def test_reversed_is_negative(self):
        later = datetime(2024, 1, 2)
        assert hours_between(later, datetime(2024, 1, 1)) == pytest.approx(-24)
