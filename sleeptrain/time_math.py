"""
Clock-time and timezone helpers.

Schedules are configured as "HH:MM" wall-clock strings in the child's
timezone; sessions carry absolute instants. These helpers convert between
the two for a given IANA zone and calendar day, including across DST
transitions. All instants returned here are timezone-aware UTC.
"""

import math
import re
from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytz

from .errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current instant in UTC."""
    return datetime.now(UTC)


# =============================================================================
# Wall-clock strings
# =============================================================================


def is_valid_time(time_str: str) -> bool:
    return isinstance(time_str, str) and _HHMM.match(time_str) is not None


def parse_time(time_str: str) -> time:
    """Parse "HH:MM" string to time object."""
    if not is_valid_time(time_str):
        raise ValidationError(f"Invalid time {time_str!r}, expected HH:MM")
    parts = time_str.split(":")
    return time(int(parts[0]), int(parts[1]))


def time_to_minutes(t: time) -> int:
    """Convert time to minutes since midnight."""
    return t.hour * 60 + t.minute


def parse_time_to_minutes(time_str: str) -> int:
    return time_to_minutes(parse_time(time_str))


def minutes_to_time(minutes: int) -> time:
    """Convert minutes since midnight to time (handles wrap-around)."""
    minutes = minutes % MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def format_time(t: time) -> str:
    """Format time as "HH:MM" (24-hour format for data fields)."""
    return f"{t.hour:02d}:{t.minute:02d}"


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM"."""
    return format_time(minutes_to_time(minutes))


def format_time_12h(t: time) -> str:
    """Format time as "H:MM AM/PM" (12-hour format for user-facing text)."""
    hour = t.hour
    period = "AM" if hour < 12 else "PM"
    if hour == 0:
        hour = 12
    elif hour > 12:
        hour -= 12
    return f"{hour}:{t.minute:02d} {period}"


# =============================================================================
# Timezones
# =============================================================================


def is_valid_timezone(tz_name: str) -> bool:
    return tz_name in pytz.all_timezones_set


def get_zone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA zone name, raising ValidationError for unknown names."""
    if not isinstance(tz_name, str) or not tz_name:
        raise ValidationError("Timezone is required")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone {tz_name!r}") from exc


def get_timezone_offset_minutes(tz_name: str, at: datetime | None = None) -> int:
    """
    Get UTC offset in minutes for a timezone at a given instant.

    Args:
        tz_name: IANA timezone name (e.g., "America/New_York")
        at: Aware instant to check (for DST), defaults to now

    Returns:
        Offset in minutes (e.g., -300 for EST, -240 for EDT)
    """
    at = require_aware(at, "at") if at is not None else utc_now()
    localized = at.astimezone(pytz.timezone(tz_name))
    return int(localized.utcoffset().total_seconds() // 60)


def is_dst(tz_name: str, at: datetime | None = None) -> bool:
    """True if daylight saving time is in effect in the zone at the instant."""
    at = require_aware(at, "at") if at is not None else utc_now()
    localized = at.astimezone(pytz.timezone(tz_name))
    return localized.dst() != timedelta(0)


def require_aware(instant: datetime, name: str = "time") -> datetime:
    """Reject naive datetimes; normalize aware ones to UTC."""
    if not isinstance(instant, datetime):
        raise ValidationError(f"{name} must be a datetime")
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValidationError(f"{name} must be timezone-aware")
    return instant.astimezone(UTC)


def local_date(instant: datetime, tz_name: str) -> date:
    """Calendar day of the instant in the given zone."""
    return instant.astimezone(get_zone(tz_name)).date()


def parse_time_on_day(time_str: str, base: datetime, tz_name: str) -> datetime:
    """
    Resolve an "HH:MM" clock time on the local day of `base`.

    Nonexistent local times (inside a spring-forward gap) resolve with the
    pre-transition offset, landing just after the gap. Ambiguous times
    (fall-back) resolve to the first occurrence.

    Returns:
        Aware UTC instant
    """
    zone = get_zone(tz_name)
    day = base.astimezone(zone).date()
    local = datetime.combine(day, parse_time(time_str), tzinfo=zone)
    return local.astimezone(UTC)


def format_time_in_tz(instant: datetime, tz_name: str) -> str:
    """Format an instant as "HH:MM" wall-clock time in the zone."""
    return format_time(instant.astimezone(get_zone(tz_name)).time())


def format_time_12h_in_tz(instant: datetime, tz_name: str) -> str:
    """Format an instant as "H:MM AM/PM" wall-clock time in the zone."""
    return format_time_12h(instant.astimezone(get_zone(tz_name)).time())


def start_of_day_utc(instant: datetime, tz_name: str) -> datetime:
    """Local midnight of the instant's day, as a UTC instant."""
    zone = get_zone(tz_name)
    day = instant.astimezone(zone).date()
    return datetime.combine(day, time(0, 0), tzinfo=zone).astimezone(UTC)


def is_time_between(instant: datetime, start: str, end: str, tz_name: str) -> bool:
    """
    True if the instant's local clock time is within [start, end).

    Handles overnight ranges such as 19:00-07:00.
    """
    local = instant.astimezone(get_zone(tz_name))
    current = local.hour * 60 + local.minute
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if start_minutes <= end_minutes:
        return start_minutes <= current < end_minutes
    return current >= start_minutes or current < end_minutes


# =============================================================================
# Instant arithmetic
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def span_minutes(start: datetime, end: datetime) -> float:
    """Exact minutes from start to end (negative if end is earlier)."""
    return (end - start).total_seconds() / 60


def duration_minutes(start: datetime, end: datetime) -> int:
    """Minutes from start to end, rounded half up and never negative."""
    return max(0, round_half_up(span_minutes(start, end)))


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int(span_minutes(start, end))


def minutes_until(now: datetime, target: datetime) -> int:
    """Whole minutes until target, rounded up so any remaining time counts."""
    return max(0, math.ceil(span_minutes(now, target)))


def add_minutes(instant: datetime, minutes: int | float) -> datetime:
    return instant + timedelta(minutes=minutes)


def clamp(instant: datetime, earliest: datetime, latest: datetime) -> datetime:
    return max(earliest, min(instant, latest))


def midpoint(start: datetime, end: datetime) -> datetime:
    """Halfway between two instants, to the nearest whole minute."""
    return add_minutes(start, round_half_up(minutes_between(start, end) / 2))
