"""Break-aware duration arithmetic.

Converts between ``HH:mm`` clock times, minute counts and ISO timestamps.
Every calculation skips the fixed daily break window [12:00, 13:00).
"""

import math
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo

TIME_PATTERN = re.compile(r"([01][0-9]|2[0-3]):([0-5][0-9])")
DAY_MINUTES = 24 * 60
BREAK_START_MINUTES = 12 * 60
BREAK_END_MINUTES = 13 * 60

_BREAK_START = time(12, 0)
_BREAK_END = time(13, 0)
_ONE_MINUTE = timedelta(minutes=1)


def _overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> int:
    return max(0, min(end_a, end_b) - max(start_a, start_b))


def _normalize_range_end(start: int, end: int) -> int:
    """Treat an end before the start as belonging to the next day."""
    if end < start:
        return end + DAY_MINUTES
    return end


def _break_overlap_for_day_range(start: int, end: int) -> int:
    normalized_end = _normalize_range_end(start, end)
    overlap = _overlap(start, normalized_end, BREAK_START_MINUTES, BREAK_END_MINUTES)

    # Ranges running past midnight also touch the next day's break
    if normalized_end >= DAY_MINUTES:
        overlap += _overlap(
            start,
            normalized_end,
            DAY_MINUTES + BREAK_START_MINUTES,
            DAY_MINUTES + BREAK_END_MINUTES,
        )
    return overlap


def _local_wall_time(day: date, clock: time, tz: tzinfo | None) -> datetime:
    """Aware instant of a wall-clock time on a local day."""
    if tz is None:
        # Naive local time resolves with the host offset in force on that day (DST)
        return datetime.combine(day, clock).astimezone()
    return datetime.combine(day, clock, tzinfo=tz)


def _break_overlap(start: datetime, end: datetime, tz: tzinfo | None) -> timedelta:
    """Sum the overlap with the break window on every local day in [start, end)."""
    if end <= start:
        return timedelta(0)

    total = timedelta(0)
    day: date = start.astimezone(tz).date()
    last_day = end.astimezone(tz).date()
    while day <= last_day:
        break_start = _local_wall_time(day, _BREAK_START, tz)
        break_end = _local_wall_time(day, _BREAK_END, tz)
        overlap_start = max(start, break_start)
        overlap_end = min(end, break_end)
        if overlap_end > overlap_start:
            total += overlap_end - overlap_start
        day += timedelta(days=1)
    return total


def parse_time_to_minutes(text: str | None) -> int | None:
    """Parse strict ``HH:mm`` into minutes since midnight.

    Returns:
        Minutes in [0, 1440), or None for anything that is not ``HH:mm``
    """
    if not isinstance(text, str):
        return None
    match = TIME_PATTERN.fullmatch(text)
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes_to_time(minutes: float) -> str:
    """Render minutes as ``HH:mm``, wrapping into a single day."""
    normalized = math.floor(minutes) % DAY_MINUTES
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def calculate_end_time(start: str | None, minutes: float) -> str | None:
    """Project the clock time at which ``minutes`` of work starting at ``start`` end.

    Minutes inside the break window are not counted as work, so the result
    lands later than plain addition whenever the span crosses 12:00.

    Args:
        start: Start time as ``HH:mm``
        minutes: Effective work minutes

    Returns:
        End time as ``HH:mm``, or None if start is invalid or minutes <= 0
    """
    start_minutes = parse_time_to_minutes(start)
    if start_minutes is None or not math.isfinite(minutes):
        return None
    work_minutes = max(0, math.floor(minutes))
    if work_minutes <= 0:
        return None

    cursor = start_minutes
    remaining = work_minutes
    while remaining > 0:
        minute_in_day = cursor % DAY_MINUTES
        if BREAK_START_MINUTES <= minute_in_day < BREAK_END_MINUTES:
            cursor += BREAK_END_MINUTES - minute_in_day
            continue
        cursor += 1
        remaining -= 1

    return format_minutes_to_time(cursor)


def calculate_duration_minutes(start: str | None, end: str | None) -> int:
    """Work minutes between two clock times, excluding the break window.

    An end earlier than the start is read as the next day.
    """
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if start_minutes is None or end_minutes is None:
        return 0

    raw_minutes = _normalize_range_end(start_minutes, end_minutes) - start_minutes
    break_minutes = _break_overlap_for_day_range(start_minutes, end_minutes)
    return max(0, raw_minutes - break_minutes)


def calculate_actual_duration_minutes(
    start: str | None, end: str | None, suspend_minutes: float
) -> int:
    base_minutes = calculate_duration_minutes(start, end)
    suspended = max(0, math.floor(suspend_minutes)) if math.isfinite(suspend_minutes) else 0
    return max(0, base_minutes - suspended)


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO timestamp into an aware datetime.

    Naive timestamps are interpreted in the host's local zone.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def format_iso(moment: datetime) -> str:
    """Format as UTC ISO-8601 with millisecond precision (``...T00:00:00.000Z``)."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def calculate_elapsed_minutes(start_iso: str, end_iso: str, tz: tzinfo | None = None) -> int:
    """Whole work minutes between two timestamps, excluding every break window.

    The interval may span several days; the break is evaluated on each local
    calendar day it touches.

    Args:
        start_iso: Interval start
        end_iso: Interval end
        tz: Zone whose calendar days define the break (default: host local)

    Returns:
        Floored minutes, 0 when either timestamp is invalid or end <= start
    """
    start = parse_iso(start_iso)
    end = parse_iso(end_iso)
    if start is None or end is None or end <= start:
        return 0

    work = (end - start) - _break_overlap(start, end, tz)
    return max(0, work // _ONE_MINUTE)


def format_minutes_as_hour_minute(minutes: float) -> str:
    normalized = max(0, math.floor(minutes))
    return f"{normalized // 60}h {normalized % 60}m"


def format_minutes_as_decimal_hours_value(minutes: float) -> str:
    """Render minutes as decimal hours with two places (405 -> ``"6.75"``)."""
    normalized = max(0, math.floor(minutes))
    hundredths = math.floor(normalized * 100 / 60 + 0.5)
    return f"{hundredths / 100:.2f}"


def format_minutes_as_decimal_hours(minutes: float) -> str:
    return f"{format_minutes_as_decimal_hours_value(minutes)}h"


def format_minutes(minutes: float, mode: str) -> str:
    """Render minutes in the user's display mode (``hourMinute`` or ``decimal``)."""
    if mode == "decimal":
        return format_minutes_as_decimal_hours(minutes)
    return format_minutes_as_hour_minute(minutes)
