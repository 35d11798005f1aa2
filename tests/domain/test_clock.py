"""Tests for the Clock implementations."""

from datetime import date, datetime, timedelta, timezone

import pytest

from coop_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_on_fixes_noon_utc(self):
        clock = DeterministicClock.on(date(2025, 3, 15))
        assert clock.now() == datetime(2025, 3, 15, 12, tzinfo=timezone.utc)
        assert clock.today() == date(2025, 3, 15)
        assert clock.now() == clock.now()

    def test_advance_days_crosses_year(self):
        clock = DeterministicClock.on(date(2025, 12, 31))
        clock.advance_days(1)
        assert clock.today() == date(2026, 1, 1)

    def test_move_to_keeps_time_of_day(self):
        clock = DeterministicClock.on(date(2025, 3, 15))
        clock.move_to(date(2024, 2, 29))
        assert clock.now() == datetime(2024, 2, 29, 12, tzinfo=timezone.utc)

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2025, 1, 1))


class TestSystemClock:
    def test_utc_by_default(self):
        now = SystemClock().now()
        assert now.utcoffset() == timedelta(0)

    def test_today_follows_zone(self):
        ahead = timezone(timedelta(hours=14))
        clock = SystemClock(ahead)
        assert clock.today() == clock.now().date()
        assert clock.now().utcoffset() == timedelta(hours=14)
