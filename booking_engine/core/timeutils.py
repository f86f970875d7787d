"""
Time helpers shared by the scheduling services.

Instants are handled as naive UTC datetimes. Business and staff hours are
wall-clock times in the business timezone and are converted per date.
"""

import logging
import re
from datetime import date, datetime, time, timezone

import pytz

from booking_engine.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# 0 = Sunday, 6 = Saturday
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    """Parse a 24-hour "HH:MM" string."""
    if not isinstance(value, str) or not HHMM_PATTERN.match(value):
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM (24-hour)")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def format_hhmm(value: time | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%H:%M")


def validate_day_of_week(day: int) -> int:
    if not isinstance(day, int) or isinstance(day, bool) or day < 0 or day > 6:
        raise ValidationError("Day of week must be 0-6 (Sunday-Saturday)")
    return day


def day_of_week(target_date: date) -> int:
    """Weekday with Sunday as 0."""
    return (target_date.weekday() + 1) % 7


def to_utc_naive(value: datetime) -> datetime:
    """Normalize an instant to naive UTC. Naive input is taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_timezone(tz_name: str | None):
    try:
        return pytz.timezone(tz_name or "UTC")
    except pytz.UnknownTimeZoneError:
        logger.warning("Invalid timezone '%s', using UTC", tz_name)
        return pytz.UTC


def local_date(instant: datetime, tz_name: str | None) -> date:
    """Calendar date of a naive UTC instant in the given timezone."""
    tz = get_timezone(tz_name)
    return pytz.utc.localize(instant).astimezone(tz).date()


def local_to_utc(target_date: date, wall_time: time, tz_name: str | None) -> datetime:
    tz = get_timezone(tz_name)
    localized = tz.localize(datetime.combine(target_date, wall_time))
    return localized.astimezone(pytz.utc).replace(tzinfo=None)


def intersect_times(
    first: tuple[time, time],
    second: tuple[time, time],
) -> tuple[time, time] | None:
    """Intersection of two wall-clock windows, or None when they don't meet."""
    start = max(first[0], second[0])
    end = min(first[1], second[1])
    if start >= end:
        return None
    return start, end


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap."""
    return a_start < b_end and b_start < a_end
