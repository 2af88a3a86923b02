from uuid import UUID

from backend.app.core.logger import logger
from backend.app.services.errors import NotFoundError
from backend.app.services.events import SlotEvents
from backend.app.services.repository import Booking, BookingRepository


async def confirm_booking(repo: BookingRepository, events: SlotEvents, booking_id: UUID) -> Booking:
    """pending -> confirmed. Anything not currently pending is reported as not found."""
    async with repo.transaction():
        booking = await repo.confirm(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found or not pending")

    logger.info("Booking {} confirmed ({} {})", booking.id, booking.date, booking.time)
    await events.publish_slots_updated(booking.date)
    return booking


async def cancel_booking(repo: BookingRepository, events: SlotEvents, booking_id: UUID) -> Booking:
    """Any status -> cancelled. Cancelling twice succeeds; the row is kept for history."""
    async with repo.transaction():
        booking = await repo.cancel(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    logger.info("Booking {} cancelled ({} {})", booking.id, booking.date, booking.time)
    await events.publish_slots_updated(booking.date)
    return booking
