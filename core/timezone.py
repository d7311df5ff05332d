"""
Timezone and wall-clock utilities for weekly course schedules.
"""

from datetime import date, datetime, time, timedelta

import pytz

from .constants import DAY_NAMES


def resolve_timezone(tz_name: str):
    """
    Resolve a timezone name to a pytz timezone, falling back to UTC.

    Args:
        tz_name: Timezone string (e.g., "Africa/Abidjan", "GMT")
    """
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def is_valid_timezone(tz_name: str) -> bool:
    try:
        pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def parse_time_of_day(value: str) -> time:
    """
    Parse a course time in HH:MM format.

    Raises:
        ValueError: If the string is not a valid 24-hour HH:MM time
    """
    try:
        hours_str, minutes_str = value.strip().split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")

    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")

    return time(hours, minutes)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo), convert aware ones."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def weekday_name(dt: datetime, tz) -> str:
    """Get the lowercase weekday name of an instant in the given timezone."""
    return DAY_NAMES[dt.astimezone(tz).weekday()]


def localize(day: date, time_of_day: time, tz) -> datetime:
    """Build an aware local datetime, resolving DST gaps the way pytz does."""
    return tz.normalize(tz.localize(datetime.combine(day, time_of_day)))


def next_occurrence(day_name: str, time_of_day: time, tz, now: datetime) -> datetime:
    """
    Find the next start of a weekly class at or after `now`.

    Args:
        day_name: Lowercase weekday (e.g., "monday")
        time_of_day: Local wall-clock start time
        tz: pytz timezone the class time is expressed in
        now: Current instant (timezone-aware)

    Returns:
        Aware datetime in `tz`. Today's class counts while it hasn't started;
        once it has, the following week's class is returned.
    """
    local_now = now.astimezone(tz)
    days_ahead = (DAY_NAMES.index(day_name) - local_now.weekday()) % 7
    candidate = localize(local_now.date() + timedelta(days=days_ahead), time_of_day, tz)
    if candidate < local_now:
        candidate = localize(
            local_now.date() + timedelta(days=days_ahead + 7), time_of_day, tz
        )
    return candidate


def reminder_fire_time(start: datetime, minutes_before: int) -> datetime:
    """
    Compute when a reminder fires for a class starting at `start`.

    Plain datetime arithmetic: a lead time larger than the start's time of day
    lands on the previous calendar day.
    """
    fire_at = start - timedelta(minutes=minutes_before)
    if hasattr(start.tzinfo, "normalize"):
        # pytz keeps the old UTC offset after arithmetic until normalized
        fire_at = start.tzinfo.normalize(fire_at)
    return fire_at


def format_time_in_timezone(dt: datetime, tz) -> str:
    """Format an instant as HH:MM in the given timezone."""
    return dt.astimezone(tz).strftime("%H:%M")
