"""
Unit tests for the daily rollover window.
"""

from datetime import datetime, timedelta, timezone

import pytest

from songmatch.core.clock import ResetWindow, ensure_aware
from songmatch.core.config import Settings
from tests import NOW, WINDOW_START


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestCurrentWindowStart:
    """Test suite for ResetWindow.current_window_start."""

    def test_after_rollover_uses_today(self, window: ResetWindow):
        assert window.current_window_start(NOW) == WINDOW_START

    def test_before_rollover_uses_yesterday(self, window: ResetWindow):
        # 08:00 PDT
        now = utc(2026, 3, 10, 15, 0)
        assert window.current_window_start(now) == utc(2026, 3, 9, 16, 0)

    def test_exact_rollover_is_its_own_window_start(self, window: ResetWindow):
        assert window.current_window_start(WINDOW_START) == WINDOW_START

    def test_standard_time_offset(self, window: ResetWindow):
        # 12:00 PST, rollover is 17:00 UTC in winter
        now = utc(2026, 1, 15, 20, 0)
        assert window.current_window_start(now) == utc(2026, 1, 15, 17, 0)

    def test_result_is_utc(self, window: ResetWindow):
        start = window.current_window_start(NOW)
        assert start.utcoffset() == timedelta(0)

    def test_monotonic_and_never_after_now(self, window: ResetWindow):
        previous = None
        now = utc(2026, 3, 7, 0, 0)

        # Crosses the March DST change
        for _ in range(24 * 4):
            start = window.current_window_start(now)
            assert start <= now
            if previous is not None:
                assert start >= previous
            previous = start
            now += timedelta(minutes=47)

    def test_custom_rollover(self):
        window = ResetWindow(rollover_hour=0, tz_name="UTC")
        assert window.current_window_start(utc(2026, 3, 10, 23, 59)) == utc(2026, 3, 10, 0, 0)

    def test_naive_now_is_treated_as_utc(self, window: ResetWindow):
        assert window.current_window_start(NOW.replace(tzinfo=None)) == WINDOW_START

    def test_invalid_rollover_hour(self):
        with pytest.raises(ValueError):
            ResetWindow(rollover_hour=24)

    def test_from_settings(self):
        settings = Settings(ROLLOVER_HOUR=6, ROLLOVER_TIMEZONE="UTC")
        window = ResetWindow.from_settings(settings)
        assert window.current_window_start(utc(2026, 3, 10, 7, 0)) == utc(2026, 3, 10, 6, 0)


class TestIsActive:
    """Test suite for the strict activity boundary."""

    def test_created_exactly_at_boundary_is_not_active(self, window: ResetWindow):
        assert window.is_active(WINDOW_START, NOW) is False

    def test_created_just_after_boundary_is_active(self, window: ResetWindow):
        assert window.is_active(WINDOW_START + timedelta(microseconds=1), NOW) is True

    def test_created_yesterday_is_not_active(self, window: ResetWindow):
        assert window.is_active(NOW - timedelta(days=1), NOW) is False

    def test_naive_timestamp(self, window: ResetWindow):
        ts = (WINDOW_START + timedelta(minutes=5)).replace(tzinfo=None)
        assert window.is_active(ts, NOW) is True

    def test_has_posted_in_window(self, window: ResetWindow):
        assert window.has_posted_in_window(None, NOW) is False
        assert window.has_posted_in_window(NOW - timedelta(hours=1), NOW) is True
        assert window.has_posted_in_window(NOW - timedelta(hours=5), NOW) is False


class TestNextWindowStart:
    """Test suite for countdown helpers."""

    def test_next_window_is_tomorrow(self, window: ResetWindow):
        assert window.next_window_start(NOW) == utc(2026, 3, 11, 16, 0)

    def test_next_window_before_rollover_is_today(self, window: ResetWindow):
        assert window.next_window_start(utc(2026, 3, 10, 15, 0)) == WINDOW_START

    def test_next_window_at_boundary_is_strictly_after(self, window: ResetWindow):
        assert window.next_window_start(WINDOW_START) == utc(2026, 3, 11, 16, 0)

    def test_time_until_reset_hours(self, window: ResetWindow):
        assert window.time_until_reset(NOW) == "20h 0m"

    def test_time_until_reset_minutes_only(self, window: ResetWindow):
        assert window.time_until_reset(utc(2026, 3, 11, 15, 15)) == "45m"


class TestMonthBoundaries:
    """Archive months are calendar months in the rollover timezone."""

    def test_month_start_standard_time(self, window: ResetWindow):
        assert window.month_start(2026, 3) == utc(2026, 3, 1, 8, 0)

    def test_month_start_daylight_time(self, window: ResetWindow):
        assert window.month_start(2026, 7) == utc(2026, 7, 1, 7, 0)

    def test_next_month_wraps_year(self, window: ResetWindow):
        assert window.next_month_start(2026, 12) == utc(2027, 1, 1, 8, 0)

    def test_current_month_start(self, window: ResetWindow):
        assert window.current_month_start(NOW) == utc(2026, 3, 1, 8, 0)

    def test_month_key_uses_local_date(self, window: ResetWindow):
        # 23:30 on Feb 28 in Los Angeles
        assert window.month_key(utc(2026, 3, 1, 7, 30)) == "2026-02"
        assert window.month_key(utc(2026, 3, 1, 8, 0)) == "2026-03"

    def test_invalid_month(self, window: ResetWindow):
        with pytest.raises(ValueError):
            window.month_start(2026, 13)


def test_ensure_aware():
    naive = datetime(2026, 1, 1, 12, 0)
    assert ensure_aware(naive) == utc(2026, 1, 1, 12, 0)
    assert ensure_aware(NOW) is NOW
