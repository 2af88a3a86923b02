from collections.abc import Iterable
from datetime import date


WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def to_minutes(value: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """Return ``value`` as zero-padded "HH:MM", dropping any seconds."""
    return format_minutes(to_minutes(value))


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open: a booking ending at 10:00 leaves 10:00 free.
    return start_a < end_b and start_b < end_a


def is_closed_day(day: date, closed_days: Iterable[int]) -> bool:
    return day.weekday() in set(closed_days)


def is_within_booking_window(day: date, today: date, max_days_ahead: int) -> bool:
    delta = (day - today).days
    return 0 <= delta <= max_days_ahead


def closed_days_message(closed_days: Iterable[int]) -> str:
    names = [f"{WEEKDAY_NAMES[d]}s" for d in sorted(set(closed_days))]
    if len(names) > 1:
        return f"Closed on {', '.join(names[:-1])} and {names[-1]}"
    return f"Closed on {names[0]}" if names else "Closed on this day"
