"""Time helpers shared by due-date filters and analytics."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from taskhub.config import settings


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def local_zone(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.TIMEZONE)


def start_of_today(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """Local midnight of the current day, returned in UTC."""
    zone = local_zone(tz_name)
    current = (now or utc_now()).astimezone(zone)
    midnight = datetime.combine(current.date(), datetime.min.time(), tzinfo=zone)
    return midnight.astimezone(timezone.utc)


def today_bounds(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Return (start of today, start of tomorrow) in UTC."""
    start = start_of_today(now, tz_name)
    return start, start + timedelta(days=1)


def local_date(value: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of an aware datetime in the configured zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(local_zone(tz_name)).date()
