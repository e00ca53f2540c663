"""Time utilities for consistent timestamp handling."""

from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hotelbook.observability.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TIMEZONE = "UTC"


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def resolve_timezone(tz_name: str | None) -> tzinfo:
    """Return the tzinfo for an IANA name, falling back to UTC.

    Missing names fall back silently; unknown names are logged.
    """
    if not tz_name or tz_name == FALLBACK_TIMEZONE:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "unknown hotel timezone, falling back to UTC",
            extra={"extra_fields": {"timezone": tz_name}},
        )
        return timezone.utc


def today_in_timezone(tz_name: str | None, now: datetime | None = None) -> date:
    """Return the calendar date of `now` in the given timezone."""
    if now is None:
        now = utc_now()
    return now.astimezone(resolve_timezone(tz_name)).date()


def start_of_today(tz_name: str | None, now: datetime) -> datetime:
    """Return local midnight of today's date in tz_name, as an aware datetime."""
    tz = resolve_timezone(tz_name)
    return datetime.combine(today_in_timezone(tz_name, now), time.min, tzinfo=tz)


def is_known_timezone(tz_name: str) -> bool:
    """True if tz_name is an IANA zone this interpreter can load."""
    if tz_name == FALLBACK_TIMEZONE:
        return True
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


# Hotels created before timezones were stored per hotel, keyed by location.
LOCATION_TIMEZONES = {
    "New York City": "America/New_York",
    "Miami, Florida": "America/New_York",
    "Denver, Colorado": "America/Denver",
    "Manila, Philippines": "Asia/Manila",
    "Tokyo, Japan": "Asia/Tokyo",
}


def timezone_for_location(location: str | None) -> str:
    """Default timezone for a hotel location; UTC when the location is not known."""
    if not location:
        return FALLBACK_TIMEZONE
    return LOCATION_TIMEZONES.get(location.strip(), FALLBACK_TIMEZONE)
