"""Time arithmetic for reminders.

Every function here is pure. Instants are timezone-aware UTC datetimes and
user time zones are plain UTC offsets in hours (fractional offsets such as
+5.5 are allowed). A "local" value is the UTC instant shifted by the offset,
so reading its ``hour``/``date()`` gives the user's wall clock.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, Tuple

from .models import DSTMovement, Frequency


_FIXED_DAY_STEPS: Dict[Frequency, int] = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
    Frequency.TRIWEEKLY: 21,
}

_MONTH_STEPS: Dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.BIANNUALLY: 6,
    Frequency.ANNUALLY: 12,
}


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def add_hours(instant: dt.datetime, hours: float) -> dt.datetime:
    return instant + dt.timedelta(hours=hours)


def add_minutes(instant: dt.datetime, minutes: float) -> dt.datetime:
    return instant + dt.timedelta(minutes=minutes)


def add_seconds(instant: dt.datetime, seconds: float) -> dt.datetime:
    return instant + dt.timedelta(seconds=seconds)


def shift_to_offset(instant: dt.datetime, utc_offset: float) -> dt.datetime:
    return instant + dt.timedelta(hours=utc_offset)


def shift_from_offset(local: dt.datetime, utc_offset: float) -> dt.datetime:
    return local - dt.timedelta(hours=utc_offset)


def is_same_calendar_day(a: dt.datetime, b: dt.datetime, utc_offset: float = 0) -> bool:
    """Compare the calendar dates of two instants as seen from ``utc_offset``."""
    return shift_to_offset(a, utc_offset).date() == shift_to_offset(b, utc_offset).date()


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(year: int, month: int) -> int:
    if month == 2:
        return 29 if is_leap_year(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def add_months_clamped(date: dt.datetime, months: int) -> dt.datetime:
    """Add ``months`` keeping the day-of-month, clamped to the target month's end.

    Jan 31 + 1 month is Feb 28, or Feb 29 in a leap year.
    """
    month_index = date.month - 1 + months
    year = date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(date.day, days_in_month(year, month))
    return date.replace(year=year, month=month, day=day)


def compute_next_occurrence(last_fire: dt.datetime, frequency: Frequency) -> dt.datetime:
    """Return the instant one recurrence step after ``last_fire``.

    The result may still be in the past; use
    :func:`calculate_next_future_occurrence` when scheduling.
    """
    frequency = Frequency(frequency)
    if frequency is Frequency.DO_NOT_REPEAT:
        raise ValueError("do-not-repeat reminders have no next occurrence")
    if frequency is Frequency.DAILY_WEEKDAYS:
        weekday = last_fire.weekday()
        # Monday..Thursday step one day, Friday..Sunday land on Monday.
        days = 1 if weekday <= 3 else 7 - weekday
        return last_fire + dt.timedelta(days=days)
    if frequency in _FIXED_DAY_STEPS:
        return last_fire + dt.timedelta(days=_FIXED_DAY_STEPS[frequency])
    return add_months_clamped(last_fire, _MONTH_STEPS[frequency])


def calculate_next_future_occurrence(
    last_fire: dt.datetime, frequency: Frequency, now: dt.datetime
) -> dt.datetime:
    """Step ``last_fire`` forward until it is strictly after ``now``.

    Missed periods are skipped rather than queued. Cost is linear in the
    number of missed periods.
    """
    next_fire = compute_next_occurrence(last_fire, frequency)
    while next_fire <= now:
        next_fire = compute_next_occurrence(next_fire, frequency)
    return next_fire


def apply_dst_shift(due_date: dt.datetime, direction: DSTMovement) -> dt.datetime:
    """Move the wall-clock hour of ``due_date`` by one hour.

    Forward from hour 23 lands on hour 0 of the next calendar day, backward
    from hour 0 lands on hour 23 of the previous one. Minutes and seconds are
    kept.
    """
    direction = DSTMovement(direction)
    step = 1 if direction is DSTMovement.FORWARD else -1
    hour = due_date.hour + step
    day_changed = 0
    if hour > 23:
        hour, day_changed = 0, 1
    elif hour < 0:
        hour, day_changed = 23, -1
    return due_date.replace(hour=hour) + dt.timedelta(days=day_changed)


def local_nine_am(local: dt.datetime) -> dt.datetime:
    return local.replace(hour=9, minute=0, second=0, microsecond=0)


def next_local_nine_am(now: dt.datetime, utc_offset: float, days_ahead: int) -> dt.datetime:
    local = shift_to_offset(now, utc_offset) + dt.timedelta(days=days_ahead)
    return shift_from_offset(local_nine_am(local), utc_offset)


def upcoming_monday(local: dt.datetime) -> dt.datetime:
    """Midnight of the next Monday after ``local`` (a Monday maps to the following one)."""
    days = (7 - local.weekday()) % 7 or 7
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + dt.timedelta(days=days)


def convert_time_12_to_24(time_12h: str) -> Tuple[int, int]:
    """Parse ``"HH:MM AM"``/``"HH:MM PM"``; a bare ``"HH:MM"`` is read as 24h."""
    parts = time_12h.strip().split(" ")
    hours_str, minutes_str = parts[0].split(":")
    hours = int(hours_str)
    minutes = int(minutes_str)
    if len(parts) > 1:
        modifier = parts[1].upper()
        if hours == 12:
            hours = 0
        if modifier == "PM":
            hours += 12
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise ValueError(f"Invalid time: {time_12h}")
    return hours, minutes


def parse_local_date_time(date_str: str, time_str: str, utc_offset: float) -> dt.datetime:
    """Turn a local ``YYYY-MM-DD`` date and a time string into a UTC instant."""
    year, month, day = (int(part) for part in date_str.split("-"))
    hours, minutes = convert_time_12_to_24(time_str)
    local = dt.datetime(year, month, day, hours, minutes, tzinfo=dt.timezone.utc)
    return shift_from_offset(local, utc_offset)
