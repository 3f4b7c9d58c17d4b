"""
Daily rollover window.

Posts live for one "day" that starts at a fixed wall-clock hour in a fixed
timezone. Every eligibility question ("is this post still active?", "has this
user already posted today?") goes through ResetWindow so the boundary
arithmetic exists in exactly one place.

Boundaries are computed with zoneinfo, so around daylight-saving transitions
the absolute instant of the rollover shifts by the DST delta.
"""

from datetime import datetime, date, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from songmatch.core.config import Settings, get_settings


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(ts: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


class ResetWindow:
    """
    Computes the daily window boundaries.

    Args:
        rollover_hour: Local hour (0-23) at which a new window opens
        tz_name: IANA timezone name the rollover hour is expressed in
    """

    def __init__(self, rollover_hour: int = 9, tz_name: str = "America/Los_Angeles"):
        if not 0 <= rollover_hour <= 23:
            raise ValueError("rollover_hour must be between 0 and 23")
        self.rollover_hour = rollover_hour
        self.tz = ZoneInfo(tz_name)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ResetWindow":
        settings = settings or get_settings()
        return cls(settings.ROLLOVER_HOUR, settings.ROLLOVER_TIMEZONE)

    def _rollover_on(self, day: date) -> datetime:
        return datetime.combine(day, time(self.rollover_hour), tzinfo=self.tz)

    def current_window_start(self, now: Optional[datetime] = None) -> datetime:
        """
        Most recent rollover at or before ``now``.

        Returns an aware datetime in UTC.
        """
        local_now = ensure_aware(now or utc_now()).astimezone(self.tz)
        boundary = self._rollover_on(local_now.date())
        if local_now < boundary:
            boundary = self._rollover_on(local_now.date() - timedelta(days=1))
        return boundary.astimezone(timezone.utc)

    def next_window_start(self, now: Optional[datetime] = None) -> datetime:
        """First rollover strictly after ``now``, for countdown display."""
        local_now = ensure_aware(now or utc_now()).astimezone(self.tz)
        boundary = self._rollover_on(local_now.date())
        if local_now >= boundary:
            boundary = self._rollover_on(local_now.date() + timedelta(days=1))
        return boundary.astimezone(timezone.utc)

    def is_active(self, ts: datetime, now: Optional[datetime] = None) -> bool:
        """A timestamp is active only if it is strictly after the window start."""
        return ensure_aware(ts) > self.current_window_start(now)

    def has_posted_in_window(
        self,
        last_post_at: Optional[datetime],
        now: Optional[datetime] = None
    ) -> bool:
        if last_post_at is None:
            return False
        return self.is_active(last_post_at, now)

    def time_until_reset(self, now: Optional[datetime] = None) -> str:
        """Human readable countdown such as ``3h 12m`` or ``45m``."""
        now = ensure_aware(now or utc_now())
        remaining = self.next_window_start(now) - now
        total_minutes = int(remaining.total_seconds() // 60)
        hours, minutes = divmod(total_minutes, 60)
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    def month_start(self, year: int, month: int) -> datetime:
        """Local midnight on the first day of ``month``, as UTC."""
        return datetime(year, month, 1, tzinfo=self.tz).astimezone(timezone.utc)

    def next_month_start(self, year: int, month: int) -> datetime:
        if month == 12:
            return self.month_start(year + 1, 1)
        return self.month_start(year, month + 1)

    def current_month_start(self, now: Optional[datetime] = None) -> datetime:
        local_now = ensure_aware(now or utc_now()).astimezone(self.tz)
        return self.month_start(local_now.year, local_now.month)

    def month_key(self, ts: datetime) -> str:
        """``YYYY-MM`` of a timestamp in the rollover timezone."""
        local = ensure_aware(ts).astimezone(self.tz)
        return f"{local.year:04d}-{local.month:02d}"
