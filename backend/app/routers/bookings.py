from datetime import datetime

from fastapi import APIRouter, Depends, status

from backend.app.core.config import ShopRules, get_rules
from backend.app.core.rate_limit import throttle_public
from backend.app.db.session import get_repository
from backend.app.routers.schemas import BookingEnvelope, BookingIn, BookingOut
from backend.app.services.admission import submit_booking
from backend.app.services.events import SlotEvents, get_events
from backend.app.services.repository import BookingRepository


router = APIRouter(dependencies=[Depends(throttle_public)])


@router.post("/bookings", response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingIn,
    repo: BookingRepository = Depends(get_repository),
    rules: ShopRules = Depends(get_rules),
    events: SlotEvents = Depends(get_events),
) -> BookingEnvelope:
    booking = await submit_booking(
        repo,
        rules,
        events,
        name=payload.name,
        phone=payload.phone,
        service=payload.service,
        date=payload.date,
        time=payload.time,
        now=datetime.now(),
    )
    return BookingEnvelope(booking=BookingOut(**booking.to_dict()))
