from datetime import date

import pytest

from backend.app.services.rules import (
    closed_days_message,
    format_minutes,
    intervals_overlap,
    is_closed_day,
    is_within_booking_window,
    normalize_time,
    to_minutes,
)


def test_to_minutes_ignores_seconds():
    assert to_minutes("09:30") == 570
    assert to_minutes("09:30:59") == 570
    assert to_minutes("00:00") == 0


@pytest.mark.parametrize("value", ["", "9", "24:00", "10:60", "ab:cd", "1:2:3:4"])
def test_to_minutes_rejects_garbage(value):
    with pytest.raises(ValueError):
        to_minutes(value)


def test_normalize_time_pads_and_strips():
    assert normalize_time("9:05") == "09:05"
    assert normalize_time("17:00:00") == "17:00"
    assert format_minutes(14 * 60 + 30) == "14:30"


def test_touching_intervals_do_not_overlap():
    assert not intervals_overlap(540, 570, 570, 600)
    assert not intervals_overlap(570, 600, 540, 570)
    assert intervals_overlap(540, 585, 570, 600)
    assert intervals_overlap(540, 600, 550, 560)


def test_closed_day_is_sunday_by_default():
    assert is_closed_day(date(2026, 10, 25), {6})
    assert not is_closed_day(date(2026, 10, 24), {6})


def test_booking_window_is_inclusive():
    today = date(2026, 10, 19)
    assert is_within_booking_window(today, today, 30)
    assert is_within_booking_window(date(2026, 11, 18), today, 30)
    assert not is_within_booking_window(date(2026, 11, 19), today, 30)
    assert not is_within_booking_window(date(2026, 10, 18), today, 30)


def test_closed_days_message():
    assert closed_days_message({6}) == "Closed on Sundays"
    assert closed_days_message({5, 6}) == "Closed on Saturdays and Sundays"
