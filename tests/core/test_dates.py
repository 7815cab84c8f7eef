import datetime as dt

import pytest

from packages.core.reminders.dates import (
    add_months_clamped,
    apply_dst_shift,
    calculate_next_future_occurrence,
    compute_next_occurrence,
    convert_time_12_to_24,
    days_in_month,
    is_leap_year,
    is_same_calendar_day,
    next_local_nine_am,
    parse_local_date_time,
    shift_to_offset,
    upcoming_monday,
)
from packages.core.reminders.models import DSTMovement, Frequency


UTC = dt.timezone.utc


def _utc(*args):
    return dt.datetime(*args, tzinfo=UTC)


def test_leap_year_rules():
    assert is_leap_year(2024) is True
    assert is_leap_year(2023) is False
    assert is_leap_year(1900) is False
    assert is_leap_year(2000) is True
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2023, 2) == 28
    assert days_in_month(2023, 4) == 30


def test_add_months_clamps_to_month_end():
    assert add_months_clamped(_utc(2023, 1, 31, 9), 1) == _utc(2023, 2, 28, 9)
    assert add_months_clamped(_utc(2024, 1, 31, 9), 1) == _utc(2024, 2, 29, 9)
    assert add_months_clamped(_utc(2024, 11, 30, 9), 3) == _utc(2025, 2, 28, 9)
    assert add_months_clamped(_utc(2024, 2, 29, 9), 12) == _utc(2025, 2, 28, 9)


@pytest.mark.parametrize("frequency", [f for f in Frequency if f.is_recurring])
def test_next_occurrence_is_always_later(frequency):
    last_fire = _utc(2024, 1, 31, 23, 30)
    assert compute_next_occurrence(last_fire, frequency) > last_fire


def test_next_occurrence_steps():
    monday = _utc(2024, 1, 1, 9)
    assert compute_next_occurrence(monday, Frequency.DAILY) == _utc(2024, 1, 2, 9)
    assert compute_next_occurrence(monday, Frequency.WEEKLY) == _utc(2024, 1, 8, 9)
    assert compute_next_occurrence(monday, Frequency.BIWEEKLY) == _utc(2024, 1, 15, 9)
    assert compute_next_occurrence(monday, Frequency.TRIWEEKLY) == _utc(2024, 1, 22, 9)
    assert compute_next_occurrence(monday, Frequency.QUARTERLY) == _utc(2024, 4, 1, 9)
    assert compute_next_occurrence(monday, Frequency.BIANNUALLY) == _utc(2024, 7, 1, 9)
    assert compute_next_occurrence(monday, Frequency.ANNUALLY) == _utc(2025, 1, 1, 9)


def test_weekdays_skip_the_weekend():
    thursday = _utc(2024, 1, 4, 9)
    friday = _utc(2024, 1, 5, 9)
    saturday = _utc(2024, 1, 6, 9)
    sunday = _utc(2024, 1, 7, 9)
    next_monday = _utc(2024, 1, 8, 9)

    assert compute_next_occurrence(thursday, Frequency.DAILY_WEEKDAYS) == friday
    assert compute_next_occurrence(friday, Frequency.DAILY_WEEKDAYS) == next_monday
    assert compute_next_occurrence(saturday, Frequency.DAILY_WEEKDAYS) == next_monday
    assert compute_next_occurrence(sunday, Frequency.DAILY_WEEKDAYS) == next_monday


def test_do_not_repeat_has_no_next_occurrence():
    with pytest.raises(ValueError):
        compute_next_occurrence(_utc(2024, 1, 1), Frequency.DO_NOT_REPEAT)


def test_next_future_occurrence_skips_missed_periods():
    last_fire = _utc(2024, 1, 1, 9)
    now = _utc(2024, 1, 15, 9)
    assert calculate_next_future_occurrence(last_fire, Frequency.WEEKLY, now) == _utc(2024, 1, 22, 9)


@pytest.mark.parametrize("frequency", [f for f in Frequency if f.is_recurring])
def test_next_future_occurrence_is_after_now(frequency):
    last_fire = _utc(2020, 2, 29, 12)
    now = _utc(2024, 6, 1, 10)
    assert calculate_next_future_occurrence(last_fire, frequency, now) > now


def test_dst_forward_at_late_evening_rolls_the_day():
    assert apply_dst_shift(_utc(2024, 3, 9, 23, 45), DSTMovement.FORWARD) == _utc(2024, 3, 10, 0, 45)


def test_dst_backward_at_midnight_rolls_the_day():
    assert apply_dst_shift(_utc(2024, 3, 10, 0, 15), DSTMovement.BACKWARD) == _utc(2024, 3, 9, 23, 15)


def test_dst_shift_is_reversible():
    due = _utc(2024, 10, 27, 14, 5, 30)
    forward = apply_dst_shift(due, DSTMovement.FORWARD)
    assert forward == _utc(2024, 10, 27, 15, 5, 30)
    assert apply_dst_shift(forward, DSTMovement.BACKWARD) == due


def test_dst_shift_rejects_unknown_direction():
    with pytest.raises(ValueError):
        apply_dst_shift(_utc(2024, 1, 1), "sideways")


def test_same_calendar_day_depends_on_offset():
    a = _utc(2024, 6, 1, 20)
    b = _utc(2024, 6, 2, 1)
    assert is_same_calendar_day(a, b) is False
    assert is_same_calendar_day(a, b, utc_offset=-5) is True
    assert shift_to_offset(a, 5.5) == _utc(2024, 6, 2, 1, 30)


def test_time_parsing():
    assert convert_time_12_to_24("12:15 AM") == (0, 15)
    assert convert_time_12_to_24("12:15 PM") == (12, 15)
    assert convert_time_12_to_24("07:40 pm") == (19, 40)
    assert convert_time_12_to_24("18:05") == (18, 5)
    with pytest.raises(ValueError):
        convert_time_12_to_24("25:00")


def test_parse_local_date_time_converts_to_utc():
    assert parse_local_date_time("2024-06-02", "09:00 AM", 5.5) == _utc(2024, 6, 2, 3, 30)
    assert parse_local_date_time("2024-06-02", "08:00 PM", -4) == _utc(2024, 6, 3, 0, 0)


def test_snooze_anchors():
    now = _utc(2024, 6, 1, 22)  # Saturday
    assert next_local_nine_am(now, 2, days_ahead=1) == _utc(2024, 6, 3, 7)
    local = shift_to_offset(now, 2)  # Sunday 00:00 local
    assert upcoming_monday(local) == _utc(2024, 6, 3)
    assert upcoming_monday(_utc(2024, 6, 3, 8)) == _utc(2024, 6, 10)
