import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from backend.app.core.config import DEFAULT_SERVICE_DURATIONS, DEFAULT_WORKING_HOURS, ShopRules
from backend.app.services.events import SlotEvents
from backend.app.services.repository import Booking, OverlapViolation
from backend.app.services.rules import intervals_overlap, to_minutes


# Monday; the shop's default closed day is Sunday 2026-10-25.
MONDAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 19, 8, 0)


class InMemoryBookingRepository:
    """Stand-in for BookingRepository with the same per-date serialisation.

    ``serialize=False`` drops the admission lock so tests can drive the
    check-then-insert race into the store-level overlap check.
    """

    def __init__(self, *, serialize: bool = True) -> None:
        self.rows: dict[str, Booking] = {}
        self.serialize = serialize
        self.insert_calls = 0
        self._locks: dict[date, asyncio.Lock] = defaultdict(asyncio.Lock)

    def add(
        self,
        *,
        day: date,
        time: str,
        service: str = "Haircut",
        status: str = "pending",
        phone: str = "+10000000000",
        name: str = "Seeded",
        created_at: datetime | None = None,
        duration_minutes: int | None = None,
    ) -> Booking:
        booking = Booking(
            id=str(uuid4()),
            name=name,
            phone=phone,
            service=service,
            date=day,
            time=time,
            status=status,
            created_at=created_at or NOW - timedelta(days=1),
            duration_minutes=duration_minutes or DEFAULT_SERVICE_DURATIONS.get(service, 30),
        )
        self.rows[booking.id] = booking
        return booking

    @asynccontextmanager
    async def admission_lock(self, day: date):
        if not self.serialize:
            yield
            return
        async with self._locks[day]:
            snapshot = dict(self.rows)
            try:
                yield
            except BaseException:
                self.rows = snapshot
                raise

    @asynccontextmanager
    async def transaction(self):
        yield

    async def ping(self) -> None:
        return None

    def _active(self, day: date) -> list[Booking]:
        return [b for b in self.rows.values() if b.date == day and b.status != "cancelled"]

    async def count_active(self, day: date) -> int:
        await asyncio.sleep(0)
        return len(self._active(day))

    async def has_recent_booking(self, phone: str, since: datetime) -> bool:
        await asyncio.sleep(0)
        return any(b.phone == phone and b.created_at > since for b in self.rows.values())

    async def active_bookings(self, day: date) -> list[Booking]:
        await asyncio.sleep(0)
        return sorted(self._active(day), key=lambda b: b.time)

    async def insert(self, *, name, phone, service, day, start, duration_minutes, created_at) -> Booking:
        await asyncio.sleep(0)
        self.insert_calls += 1
        start_minute = to_minutes(start)
        end_minute = start_minute + duration_minutes
        for other in self._active(day):
            other_start = to_minutes(other.time)
            if intervals_overlap(start_minute, end_minute, other_start, other_start + other.duration_minutes):
                raise OverlapViolation("bookings_no_overlap")
        booking = Booking(
            id=str(uuid4()),
            name=name,
            phone=phone,
            service=service,
            date=day,
            time=start,
            status="pending",
            created_at=created_at,
            duration_minutes=duration_minutes,
        )
        self.rows[booking.id] = booking
        return booking

    def _update(self, booking_id: UUID, status: str, *, only_from: str | None = None) -> Booking | None:
        booking = self.rows.get(str(booking_id))
        if booking is None or (only_from is not None and booking.status != only_from):
            return None
        updated = replace(booking, status=status)
        self.rows[updated.id] = updated
        return updated

    async def confirm(self, booking_id: UUID) -> Booking | None:
        return self._update(booking_id, "confirmed", only_from="pending")

    async def cancel(self, booking_id: UUID) -> Booking | None:
        return self._update(booking_id, "cancelled")

    async def schedule(self, day: date) -> list[Booking]:
        return sorted((b for b in self.rows.values() if b.date == day), key=lambda b: (b.time, b.created_at))

    async def count_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = defaultdict(int)
        for booking in self.rows.values():
            counts[booking.status] += 1
        return dict(counts)

    async def export(self, date_from: date | None, date_to: date | None) -> list[Booking]:
        rows = [
            b for b in self.rows.values()
            if (date_from is None or b.date >= date_from) and (date_to is None or b.date <= date_to)
        ]
        return sorted(rows, key=lambda b: (b.date, b.time))


class RecordingEvents(SlotEvents):
    def __init__(self) -> None:
        super().__init__()
        self.published: list[date] = []

    async def publish_slots_updated(self, day: date) -> None:
        self.published.append(day)
        await super().publish_slots_updated(day)


@pytest.fixture
def rules() -> ShopRules:
    return ShopRules(
        working_hours=tuple(DEFAULT_WORKING_HOURS),
        service_durations=dict(DEFAULT_SERVICE_DURATIONS),
        closed_days=frozenset({6}),
        max_bookings_per_day=20,
        max_days_ahead=30,
        phone_cooldown_minutes=5,
    )


@pytest.fixture
def repo() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()
