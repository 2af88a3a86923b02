from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from backend.app.core.security import require_admin
from backend.app.db.session import get_repository
from backend.app.routers.schemas import BookingEnvelope, BookingOut, ScheduleOut, StatsOut
from backend.app.services.admission import parse_date
from backend.app.services.errors import ValidationError
from backend.app.services.events import SlotEvents, get_events
from backend.app.services.export import bookings_to_csv, export_filename
from backend.app.services.repository import BookingRepository
from backend.app.services.transitions import cancel_booking, confirm_booking


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/ping")
async def ping() -> dict[str, bool]:
    return {"ok": True}


@router.get("/stats", response_model=StatsOut)
async def stats(repo: BookingRepository = Depends(get_repository)) -> StatsOut:
    counts = await repo.count_by_status()
    return StatsOut(
        completedBookings=counts.get("confirmed", 0),
        pendingBookings=counts.get("pending", 0),
        cancelledBookings=counts.get("cancelled", 0),
    )


@router.get("/schedule", response_model=ScheduleOut)
async def schedule(
    date: str | None = None,
    repo: BookingRepository = Depends(get_repository),
) -> ScheduleOut:
    if not date:
        raise ValidationError("Date required")
    day = parse_date(date)
    bookings = await repo.schedule(day)
    return ScheduleOut(date=day, bookings=[BookingOut(**b.to_dict()) for b in bookings])


@router.patch("/bookings/{booking_id}/confirm", response_model=BookingEnvelope)
async def confirm(
    booking_id: UUID,
    repo: BookingRepository = Depends(get_repository),
    events: SlotEvents = Depends(get_events),
) -> BookingEnvelope:
    booking = await confirm_booking(repo, events, booking_id)
    return BookingEnvelope(booking=BookingOut(**booking.to_dict()))


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingEnvelope)
async def cancel(
    booking_id: UUID,
    repo: BookingRepository = Depends(get_repository),
    events: SlotEvents = Depends(get_events),
) -> BookingEnvelope:
    booking = await cancel_booking(repo, events, booking_id)
    return BookingEnvelope(booking=BookingOut(**booking.to_dict()))


@router.get("/export/csv")
async def export_csv(
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    repo: BookingRepository = Depends(get_repository),
) -> Response:
    start = parse_date(date_from) if date_from else None
    end = parse_date(date_to) if date_to else None
    if start and end and start > end:
        raise ValidationError("dateFrom must not be after dateTo")

    bookings = await repo.export(start, end)
    return Response(
        content=bookings_to_csv(bookings),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(start, end)}"'},
    )
