"""UTC datetime utilities and the calendar-week boundary for free slots."""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def week_start(now: datetime, tz_name: str = "UTC") -> datetime:
    """Monday 00:00 (in tz_name) of the calendar week containing `now`, as UTC.

    `now` must be timezone-aware.
    """
    if now.tzinfo is None:
        raise ValueError("week_start requires a timezone-aware datetime")
    local = now.astimezone(ZoneInfo(tz_name))
    monday = local.date() - timedelta(days=local.weekday())
    boundary = datetime.combine(monday, time.min, tzinfo=ZoneInfo(tz_name))
    return boundary.astimezone(timezone.utc)


def next_week_start(now: datetime, tz_name: str = "UTC") -> datetime:
    """The next Monday boundary strictly after the current week's start."""
    local_start = week_start(now, tz_name).astimezone(ZoneInfo(tz_name))
    nxt = datetime.combine(
        local_start.date() + timedelta(days=7), time.min, tzinfo=ZoneInfo(tz_name)
    )
    return nxt.astimezone(timezone.utc)
