"""Date and time helpers shared by the scoring functions"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo


def ensure_aware(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones"""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache(maxsize=None)
def get_zone(name: str) -> tzinfo:
    return timezone.utc if name == "UTC" else ZoneInfo(name)


def local_hour(ts: datetime, zone_name: str = "UTC") -> int:
    """
    Wall-clock hour of the instant in `zone_name`.

    Equal instants give the same hour however they were written (02:00+09:00 and
    17:00Z are both 17 in UTC); naive timestamps are read as UTC first.
    """
    return ensure_aware(ts).astimezone(get_zone(zone_name)).hour


def local_date(ts: datetime, zone_name: str = "UTC") -> date:
    """Calendar date of the instant in `zone_name`"""
    return ensure_aware(ts).astimezone(get_zone(zone_name)).date()


def window_start(end: datetime, days: float = 0, hours: float = 0) -> datetime:
    """Start of a trailing window ending at `end`"""
    return ensure_aware(end) - timedelta(days=days, hours=hours)


def within_window(ts: datetime, start: datetime, end: datetime) -> bool:
    """Inclusive on both edges"""
    return ensure_aware(start) <= ensure_aware(ts) <= ensure_aware(end)


def is_wrapping_hour(hour: int, late_from: int, early_until: int) -> bool:
    """True for hours in a range that wraps past midnight: hour >= late_from or hour <= early_until"""
    return hour >= late_from or hour <= early_until


def minutes_since(ts: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    return int((ensure_aware(now) - ensure_aware(ts)).total_seconds() // 60)
