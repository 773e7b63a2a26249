"""Calendar-day helpers shared by every countdown calculation.

Air dates are calendar dates. "Now" is an aware datetime whose own tzinfo
decides which calendar day it falls on; when no instant is given, the current
time in the configured zone (``settings.timezone``, host local when empty) is
used. Day differences are always start-of-day to start-of-day.
"""

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import settings

logger = logging.getLogger(__name__)


def get_zone(name: Optional[str] = None) -> Optional[tzinfo]:
    """Resolve an IANA zone name. None means the host's local zone."""
    name = settings.timezone if name is None else name
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', falling back to host local time")
        return None


def local_now(zone_name: Optional[str] = None) -> datetime:
    """Current instant as an aware datetime in the configured zone."""
    zone = get_zone(zone_name)
    if zone is None:
        return datetime.now().astimezone()
    return datetime.now(zone)


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(now: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware instant to the stored naive-UTC format. None stays None."""
    if now is None or now.tzinfo is None:
        return now
    return now.astimezone(timezone.utc).replace(tzinfo=None)


def today(now: Optional[datetime] = None) -> date:
    """Calendar date of `now` (or of the current instant)."""
    if now is None:
        now = local_now()
    return now.date()


def days_between(start: date, end: date) -> int:
    """Whole calendar days from `start` to `end` (negative when `end` is earlier)."""
    return (end - start).days


def days_until(target: date, now: Optional[datetime] = None) -> int:
    """Whole calendar days from today to `target`. Today itself is day 0."""
    return days_between(today(now), target)


def parse_air_date(value) -> Optional[date]:
    """Parse a catalog air date ("YYYY-MM-DD"). Missing or malformed values give None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None
