"""Slot availability.

``compute_available_slots`` is a pure function of its arguments. The public
availability endpoint and the admission controller both call it, the latter
as the last check before inserting a booking.
"""
from collections.abc import Iterable
from datetime import date

from backend.app.core.config import ShopRules
from backend.app.services.repository import Booking
from backend.app.services.rules import (
    intervals_overlap,
    is_closed_day,
    is_within_booking_window,
    to_minutes,
)


def _occupied_intervals(
    day: date,
    existing_bookings: Iterable[Booking],
    rules: ShopRules,
) -> list[tuple[int, int]]:
    intervals: list[tuple[int, int]] = []
    for booking in existing_bookings:
        if booking.date != day or booking.status == "cancelled":
            continue
        # The stored duration is what the overlap constraint enforces.
        duration = booking.duration_minutes or rules.duration_for(booking.service)
        if not duration:
            continue
        start = to_minutes(booking.time)
        intervals.append((start, start + duration))
    return intervals


def compute_available_slots(
    day: date,
    service: str,
    existing_bookings: Iterable[Booking],
    rules: ShopRules,
) -> list[str]:
    """Return the working-hour slots at which ``service`` fits on ``day``.

    Unknown services yield an empty list rather than an error. The result
    follows the order of ``rules.working_hours``.
    """
    duration = rules.duration_for(service)
    if duration is None:
        return []

    occupied = _occupied_intervals(day, existing_bookings, rules)
    available = []
    for slot in rules.working_hours:
        start = to_minutes(slot)
        end = start + duration
        if not any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in occupied):
            available.append(slot)
    return available


def slots_for_date(
    day: date,
    service: str,
    existing_bookings: Iterable[Booking],
    rules: ShopRules,
    today: date,
) -> list[str]:
    """Availability as served to customers: closed or out-of-window days have no slots."""
    if is_closed_day(day, rules.closed_days):
        return []
    if not is_within_booking_window(day, today, rules.max_days_ahead):
        return []
    return compute_available_slots(day, service, existing_bookings, rules)
