"""
Weekly schedule math.

All arithmetic uses a 1440-minute day on wall-clock time. Across a DST
transition a real day is 1380 or 1500 minutes long, so a computed boundary
may be off by up to an hour; callers driving a wake timer from
seconds_until_next_boundary() must cap the delay (see AutoManager) so the
next tick corrects it.
"""

import math
import re
from collections import defaultdict
from datetime import datetime, time
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Schedule

MINUTES_PER_DAY = 1440

DAYS_SHORT = {1: "Mon", 2: "Tue", 3: "Wed", 4: "Thu", 5: "Fri", 6: "Sat", 7: "Sun"}

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

Interval = Tuple[int, int]


def parse_time(value: str) -> Optional[time]:
    """Parse an "HH:MM" 24-hour string; None if malformed or out of range."""
    if not isinstance(value, str):
        return None

    match = _TIME_RE.match(value)
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return time(hours, minutes)


def time_to_minutes(value: time) -> int:
    """Minutes since midnight (0-1439)."""
    return value.hour * 60 + value.minute


def format_time(hours: int, minutes: int) -> str:
    """Zero-padded "HH:MM"."""
    return f"{hours:02d}:{minutes:02d}"


def previous_day(iso_day: int) -> int:
    return 7 if iso_day == 1 else iso_day - 1


def next_day(iso_day: int) -> int:
    return 1 if iso_day == 7 else iso_day + 1


def _window(schedule: Optional[Schedule]) -> Optional[Tuple[int, int]]:
    """(start, end) minutes for an enabled, parseable schedule."""
    if schedule is None or schedule.enabled is not True:
        return None
    start = parse_time(schedule.start_time)
    end = parse_time(schedule.end_time)
    if start is None or end is None:
        return None
    return time_to_minutes(start), time_to_minutes(end)


def is_schedule_active(schedule: Optional[Schedule], now: datetime) -> bool:
    """
    Check whether a schedule's window contains `now`.

    Overnight windows (start >= end) are split: the evening part
    [start, 1440) belongs to today's weekday, the post-midnight part
    [0, end) belongs to yesterday's weekday.

    Args:
        schedule: Schedule to test (None or disabled is never active)
        now: Wall-clock instant

    Returns:
        True if the window is open at `now`
    """
    window = _window(schedule)
    if window is None:
        return False
    start, end = window

    today = now.isoweekday()
    current = now.hour * 60 + now.minute

    if start < end:
        return today in schedule.days and start <= current < end

    if current >= start:
        return today in schedule.days
    if current < end:
        return previous_day(today) in schedule.days
    return False


def schedule_end_time_today(schedule: Optional[Schedule], now: datetime) -> Optional[str]:
    """End time ("HH:MM") of the window open at `now`, or None if closed."""
    if not is_schedule_active(schedule, now):
        return None
    end = parse_time(schedule.end_time)
    return format_time(end.hour, end.minute)


def seconds_until_next_boundary(schedule: Optional[Schedule], now: datetime) -> float:
    """
    Seconds until the schedule next opens or closes.

    Scans today plus the next 7 days. For each scheduled day it considers the
    start boundary and the end boundary (the end lands on the following day
    for overnight windows). Yesterday's overnight window is checked too,
    since its end can land later today.

    Args:
        schedule: Schedule to scan
        now: Wall-clock instant

    Returns:
        Smallest strictly positive offset in seconds, or math.inf when the
        schedule is disabled, malformed, or has no days
    """
    window = _window(schedule)
    if window is None or not schedule.days:
        return math.inf
    start, end = window
    overnight = start >= end

    today = now.isoweekday()
    current = now.hour * 60 + now.minute
    seconds = now.second

    best = math.inf

    def consider(diff_minutes: int) -> None:
        nonlocal best
        if diff_minutes <= 0:
            return
        diff_seconds = diff_minutes * 60 - seconds
        if 0 < diff_seconds < best:
            best = diff_seconds

    for offset in range(8):
        iso_day = (today - 1 + offset) % 7 + 1
        if iso_day not in schedule.days:
            continue

        day_base = offset * MINUTES_PER_DAY - current
        consider(start + day_base)
        if overnight:
            consider(end + MINUTES_PER_DAY + day_base)
        else:
            consider(end + day_base)

    if overnight and previous_day(today) in schedule.days:
        consider(end - current)

    return best


def _weekly_segments(schedule: Schedule, start: int, end: int) -> Dict[int, List[Interval]]:
    """Half-open minute intervals per weekday the schedule occupies.

    An overnight window contributes [start, 1440) to its own day and
    [0, end) to the following day.
    """
    segments: Dict[int, List[Interval]] = defaultdict(list)
    for day in set(schedule.days):
        if start < end:
            segments[day].append((start, end))
        else:
            segments[day].append((start, MINUTES_PER_DAY))
            if end > 0:
                segments[next_day(day)].append((0, end))
    return segments


def _intervals_overlap(first: Iterable[Interval], second: Iterable[Interval]) -> bool:
    second = list(second)
    for a0, a1 in first:
        for b0, b1 in second:
            if a0 < b1 and b0 < a1:
                return True
    return False


def schedules_overlap(first: Optional[Schedule], second: Optional[Schedule]) -> bool:
    """
    Check whether two schedules are ever open at the same time.

    Each schedule is laid out on the week: same-day windows and overnight
    evening parts on their own scheduled days, overnight post-midnight parts
    on the day after. Segments are compared only on the same weekday, which
    makes the relation symmetric.

    The result is exact, so it is less strict than comparing every window
    on every common day: Sat 23:00-07:00 and Sat 06:00-08:00 do not
    overlap, since the first is open Sunday morning, not Saturday morning.
    Such pairs pass the conflict check on save.

    Args:
        first: First schedule
        second: Second schedule

    Returns:
        True if some instant lies inside both windows; False if either
        schedule is disabled or malformed
    """
    window_a = _window(first)
    window_b = _window(second)
    if window_a is None or window_b is None:
        return False

    segments_a = _weekly_segments(first, *window_a)
    segments_b = _weekly_segments(second, *window_b)

    for day in segments_a.keys() & segments_b.keys():
        if _intervals_overlap(segments_a[day], segments_b[day]):
            return True
    return False


def format_days_summary(days: Iterable[int]) -> str:
    """Human-readable summary: Weekdays, Weekends, Daily, or short names."""
    ordered = sorted(set(days))
    if not ordered:
        return ""
    if ordered == [1, 2, 3, 4, 5]:
        return "Weekdays"
    if ordered == [6, 7]:
        return "Weekends"
    if ordered == [1, 2, 3, 4, 5, 6, 7]:
        return "Daily"
    return ", ".join(DAYS_SHORT.get(d, str(d)) for d in ordered)


# Names used by preference UIs for "auto-activates now" badges
schedule_is_active = is_schedule_active
