from datetime import datetime

from fastapi import APIRouter, Depends

from backend.app.core.config import ShopRules, get_rules
from backend.app.core.rate_limit import throttle_public
from backend.app.db.session import get_repository
from backend.app.routers.schemas import AvailabilityOut
from backend.app.services.admission import parse_date
from backend.app.services.availability import slots_for_date
from backend.app.services.errors import ValidationError
from backend.app.services.repository import BookingRepository


router = APIRouter(dependencies=[Depends(throttle_public)])


@router.get("/availability", response_model=AvailabilityOut)
async def get_availability(
    date: str | None = None,
    service: str | None = None,
    repo: BookingRepository = Depends(get_repository),
    rules: ShopRules = Depends(get_rules),
) -> AvailabilityOut:
    if not date or not service:
        raise ValidationError("Date and service required")

    day = parse_date(date)
    service = service.strip()
    today = datetime.now().date()

    if rules.duration_for(service) is None:
        return AvailabilityOut(availableSlots=[])

    existing = await repo.active_bookings(day)
    return AvailabilityOut(availableSlots=slots_for_date(day, service, existing, rules, today))
