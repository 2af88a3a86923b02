from datetime import date, datetime, timedelta

from backend.app.core.config import ShopRules
from backend.app.core.logger import logger, mask_phone
from backend.app.services.availability import compute_available_slots
from backend.app.services.errors import (
    CapacityError,
    ConflictError,
    RateLimited,
    RuleViolation,
    ValidationError,
)
from backend.app.services.events import SlotEvents
from backend.app.services.repository import Booking, BookingRepository, OverlapViolation
from backend.app.services.rules import (
    closed_days_message,
    is_closed_day,
    is_within_booking_window,
    normalize_time,
)


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_date(value: str) -> date:
    """Parse a strict "YYYY-MM-DD" calendar date."""
    value = value.strip()
    if len(value) != 10:
        raise ValidationError("Invalid date")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError("Invalid date") from exc


async def submit_booking(
    repo: BookingRepository,
    rules: ShopRules,
    events: SlotEvents,
    *,
    name: str | None,
    phone: str | None,
    service: str | None,
    date: str | None,
    time: str | None,
    now: datetime,
) -> Booking:
    """Validate a booking request and store it as pending.

    Checks run in a fixed order and stop at the first failure. The capacity,
    cooldown and availability checks and the insert share one transaction
    holding the per-date admission lock.
    """
    name, phone, service = _clean(name), _clean(phone), _clean(service)
    raw_date, raw_time = _clean(date), _clean(time)

    if not (name and phone and service and raw_date and raw_time):
        raise ValidationError("All fields required")

    duration = rules.duration_for(service)
    if duration is None:
        raise ValidationError("Invalid service")

    day = parse_date(raw_date)
    try:
        start = normalize_time(raw_time)
    except ValueError as exc:
        raise ValidationError("Invalid time") from exc

    if is_closed_day(day, rules.closed_days):
        raise RuleViolation(closed_days_message(rules.closed_days))

    if not is_within_booking_window(day, now.date(), rules.max_days_ahead):
        raise RuleViolation("Date not allowed")

    try:
        async with repo.admission_lock(day):
            if await repo.count_active(day) >= rules.max_bookings_per_day:
                raise CapacityError("Day fully booked")

            since = now - timedelta(minutes=rules.phone_cooldown_minutes)
            if await repo.has_recent_booking(phone, since):
                raise RateLimited("Please wait before booking again")

            existing = await repo.active_bookings(day)
            available = compute_available_slots(day, service, existing, rules)
            if start not in available:
                raise ConflictError("Time not available", suggestions=available)

            booking = await repo.insert(
                name=name,
                phone=phone,
                service=service,
                day=day,
                start=start,
                duration_minutes=duration,
                created_at=now,
            )
    except OverlapViolation:
        logger.warning("Overlap constraint rejected {} {} {}", service, day, start)
        existing = await repo.active_bookings(day)
        available = compute_available_slots(day, service, existing, rules)
        raise ConflictError("Time not available", suggestions=available) from None

    logger.info(
        "Booking {} accepted: {} on {} at {} for {}",
        booking.id, service, day, start, mask_phone(phone),
    )
    await events.publish_slots_updated(day)
    return booking
