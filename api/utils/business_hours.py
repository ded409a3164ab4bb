"""
Location business hours.

Stored on Location.business_hours as
    {"monday": {"open": "10:00", "close": "19:00", "is_closed": false}, ...}
Times are wall times in the location's timezone. "24:00" closes at midnight.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from api.models import DAY_KEYS
from .intervals import Interval
from .timezone_helpers import get_valid_iana_timezone, safe_localize_minutes, location_tz

logger = logging.getLogger(__name__)

MAX_LOOKAHEAD_DAYS = 14


def parse_hhmm(value: str) -> int:
    """'10:30' -> 630. Raises ValueError for anything else."""
    hours, mins = str(value).strip().split(":")[:2]
    hours, mins = int(hours), int(mins)
    if not (0 <= mins < 60) or not (0 <= hours <= 24) or (hours == 24 and mins):
        raise ValueError(f"invalid time {value!r}")
    return hours * 60 + mins


def day_hours(location, date_obj: date) -> Optional[dict]:
    """Raw entry for the weekday of date_obj, or None when closed."""
    entry = (location.business_hours or {}).get(DAY_KEYS[date_obj.weekday()])
    if not entry or entry.get("is_closed"):
        return None
    return entry


def day_window_minutes(location, date_obj: date) -> Optional[tuple]:
    """(open, close) as minutes from local midnight, or None when closed."""
    entry = day_hours(location, date_obj)
    if entry is None:
        return None
    try:
        open_mins = parse_hhmm(entry["open"])
        close_mins = parse_hhmm(entry["close"])
    except (KeyError, ValueError):
        logger.error("Bad business hours for location %s on %s: %r", location.pk, date_obj, entry)
        return None
    if close_mins <= open_mins:
        return None
    return open_mins, close_mins


def day_window(location, date_obj: date) -> Optional[Interval]:
    """Opening window of a local date as an aware Interval, or None when closed."""
    minutes = day_window_minutes(location, date_obj)
    if minutes is None:
        return None

    tz_id = get_valid_iana_timezone(location.timezone)
    start = safe_localize_minutes(date_obj, minutes[0], tz_id)
    end = safe_localize_minutes(date_obj, minutes[1], tz_id)
    if start is None or end is None:
        logger.warning("Skipping hours of location %s on %s - time doesn't exist (DST gap)", location.pk, date_obj)
        return None
    return Interval(start, end)


def is_open_at(location, dt: datetime) -> bool:
    local = dt.astimezone(location_tz(location))
    window = day_window(location, local.date())
    return window is not None and window.start <= dt < window.end


def is_open_for(location, start: datetime, end: datetime) -> bool:
    """True when [start, end) falls inside a single opening window."""
    local = start.astimezone(location_tz(location))
    window = day_window(location, local.date())
    return window is not None and window.start <= start and end <= window.end


def next_open_time(location, dt: datetime, max_days: int = MAX_LOOKAHEAD_DAYS) -> Optional[datetime]:
    """dt itself if the location is open then, else the next opening time within max_days."""
    local_date = dt.astimezone(location_tz(location)).date()
    for offset in range(max_days + 1):
        window = day_window(location, local_date + timedelta(days=offset))
        if window is None or window.end <= dt:
            continue
        return max(window.start, dt)
    return None
