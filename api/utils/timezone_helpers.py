"""
Shared timezone utilities for consistent time handling.

- Bookings, blocks and API responses are UTC ('Z' suffix)
- Business hours and staff shifts are wall times in the location's IANA timezone
- Wall time -> UTC conversion is DST-safe: times inside a spring-forward gap
  do not exist, ambiguous fall-back times take the first occurrence
"""
import logging
import zoneinfo
from datetime import datetime, date, time, timedelta, timezone as dt_tz
from typing import Optional

from django.conf import settings

logger = logging.getLogger(__name__)

UTC = dt_tz.utc


def to_utc_iso(dt) -> str | None:
    """
    Convert a datetime to UTC ISO 8601 format with 'Z' suffix.
    Returns None if dt is None.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        dt = dt.replace(tzinfo=UTC)

    utc_dt = dt.astimezone(UTC)
    return utc_dt.strftime('%Y-%m-%dT%H:%M:%SZ')


def get_valid_iana_timezone(tz_str: str | None, default: str | None = None) -> str:
    """
    Validate and return an IANA timezone string.
    Falls back to DEFAULT_LOCATION_TIMEZONE if invalid or empty.
    """
    fallback = default or settings.DEFAULT_LOCATION_TIMEZONE
    if not tz_str:
        return fallback

    try:
        zoneinfo.ZoneInfo(tz_str)
        return tz_str
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone %r, falling back to %s", tz_str, fallback)
        return fallback


def location_tz(location) -> zoneinfo.ZoneInfo:
    return zoneinfo.ZoneInfo(get_valid_iana_timezone(location.timezone))


def safe_localize(date_obj: date, time_obj: time, tz_id: str) -> Optional[datetime]:
    """
    Create an aware datetime from a local date + wall time.

    Returns None if the wall time does not exist (spring-forward gap).
    Ambiguous wall times (fall-back) resolve to the first occurrence (fold=0).
    """
    tz = zoneinfo.ZoneInfo(tz_id)
    dt_aware = datetime.combine(date_obj, time_obj).replace(tzinfo=tz, fold=0)

    # Round-trip through UTC: a non-existent wall time comes back shifted
    round_trip = dt_aware.astimezone(UTC).astimezone(tz)
    if (round_trip.hour, round_trip.minute) != (dt_aware.hour, dt_aware.minute):
        return None
    return dt_aware


def safe_localize_minutes(date_obj: date, minutes_from_midnight: int, tz_id: str) -> Optional[datetime]:
    """
    Same as safe_localize, from minutes-from-midnight. 1440 means the next midnight.
    Used for grid iteration so DST changes never shift the grid.
    """
    if minutes_from_midnight == 24 * 60:
        return safe_localize(date_obj + timedelta(days=1), time.min, tz_id)
    if minutes_from_midnight < 0 or minutes_from_midnight > 24 * 60:
        return None
    hours, mins = divmod(minutes_from_midnight, 60)
    return safe_localize(date_obj, time(hours, mins), tz_id)


def local_day_bounds_utc(date_obj: date, tz_id: str):
    """[start, end) of a local calendar day, as UTC datetimes."""
    tz = zoneinfo.ZoneInfo(tz_id)
    start = datetime.combine(date_obj, time.min).replace(tzinfo=tz)
    end = datetime.combine(date_obj + timedelta(days=1), time.min).replace(tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)
