from datetime import date, datetime, time, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from elitetime.core.config import settings


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:  # naive -> assume UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Naive wall-clock time in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def parse_hhmm(value: Optional[str]) -> Tuple[int, int]:
    """'08:45' -> (8, 45); malformed values give (0, 0)."""
    try:
        hours, minutes = (value or "").split(":")[:2]
        return int(hours), int(minutes)
    except ValueError:
        return 0, 0


def to_time(value: str) -> time:
    hours, minutes = parse_hhmm(value)
    return time(hour=hours, minute=minutes)


def minutes_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() // 60))


def day_bounds(start: date, end: Optional[date] = None) -> Tuple[datetime, datetime]:
    """First and last instant of an inclusive day range (UTC)."""
    end = end or start
    begin = datetime.combine(start, time.min, tzinfo=timezone.utc)
    finish = datetime.combine(end, time.max, tzinfo=timezone.utc)
    return begin, finish


