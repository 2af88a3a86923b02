from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from uuid import UUID

from asyncpg import exceptions as asyncpg_exc
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.services.rules import format_minutes, to_minutes


EXCLUSION_VIOLATION = "23P01"

BOOKING_COLUMNS = """
    id, name, phone, service, booking_date, booking_time,
    duration_minutes, status, created_at
"""


@dataclass(frozen=True)
class Booking:
    id: str
    name: str
    phone: str
    service: str
    date: date
    time: str  # "HH:MM"
    status: str
    created_at: datetime
    duration_minutes: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["created_at"] = self.created_at.isoformat()
        return data


class OverlapViolation(Exception):
    """The store refused an insert that would overlap a non-cancelled booking."""


def _booking_from_row(row) -> Booking:
    booking_time = row["booking_time"]
    if isinstance(booking_time, time):
        booking_time = booking_time.strftime("%H:%M")
    return Booking(
        id=str(row["id"]),
        name=row["name"],
        phone=row["phone"],
        service=row["service"],
        date=row["booking_date"],
        time=booking_time,
        status=row["status"],
        created_at=row["created_at"],
        duration_minutes=row["duration_minutes"],
    )


def _is_exclusion_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", exc)
    if getattr(orig, "sqlstate", None) == EXCLUSION_VIOLATION:
        return True
    if isinstance(getattr(orig, "__cause__", None), asyncpg_exc.ExclusionViolationError):
        return True
    return "bookings_no_overlap" in str(orig)


class BookingRepository:
    """Parameterised SQL over the ``bookings`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def admission_lock(self, day: date) -> AsyncIterator[None]:
        """Open a transaction holding the advisory lock for ``day``.

        Concurrent admissions for the same date queue on the lock until the
        holder commits or rolls back.
        """
        async with self.session.begin():
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
                {"lock_key": f"bookings:{day.isoformat()}"},
            )
            yield

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self.session.begin():
            yield

    async def ping(self) -> None:
        await self.session.execute(text("SELECT 1"))

    async def count_active(self, day: date) -> int:
        result = await self.session.execute(
            text(
                """
                SELECT COUNT(*) FROM bookings
                WHERE booking_date = :day
                  AND status <> 'cancelled'
                """
            ),
            {"day": day},
        )
        return int(result.scalar_one())

    async def has_recent_booking(self, phone: str, since: datetime) -> bool:
        result = await self.session.execute(
            text(
                """
                SELECT 1 FROM bookings
                WHERE phone = :phone
                  AND created_at > :since
                LIMIT 1
                """
            ),
            {"phone": phone, "since": since},
        )
        return result.first() is not None

    async def active_bookings(self, day: date) -> list[Booking]:
        result = await self.session.execute(
            text(
                f"""
                SELECT {BOOKING_COLUMNS}
                FROM bookings
                WHERE booking_date = :day
                  AND status <> 'cancelled'
                ORDER BY booking_time ASC
                """
            ),
            {"day": day},
        )
        return [_booking_from_row(row) for row in result.mappings()]

    async def insert(
        self,
        *,
        name: str,
        phone: str,
        service: str,
        day: date,
        start: str,
        duration_minutes: int,
        created_at: datetime,
    ) -> Booking:
        start_minute = to_minutes(start)
        end_minute = start_minute + duration_minutes
        params = {
            "name": name,
            "phone": phone,
            "service": service,
            "day": day,
            "booking_time": time.fromisoformat(format_minutes(start_minute)),
            "start_minute": start_minute,
            "end_minute": end_minute,
            "duration": duration_minutes,
            "created_at": created_at,
        }
        try:
            result = await self.session.execute(
                text(
                    f"""
                    INSERT INTO bookings (
                      name, phone, service, booking_date, booking_time,
                      start_minute, end_minute, duration_minutes, status, created_at
                    ) VALUES (
                      :name, :phone, :service, :day, :booking_time,
                      :start_minute, :end_minute, :duration, 'pending', :created_at
                    )
                    RETURNING {BOOKING_COLUMNS}
                    """
                ),
                params,
            )
        except IntegrityError as exc:
            if _is_exclusion_violation(exc):
                raise OverlapViolation(str(exc.orig)) from exc
            raise
        return _booking_from_row(result.mappings().one())

    async def confirm(self, booking_id: UUID) -> Booking | None:
        result = await self.session.execute(
            text(
                f"""
                UPDATE bookings SET status = 'confirmed'
                WHERE id = :id AND status = 'pending'
                RETURNING {BOOKING_COLUMNS}
                """
            ),
            {"id": booking_id},
        )
        row = result.mappings().one_or_none()
        return _booking_from_row(row) if row is not None else None

    async def cancel(self, booking_id: UUID) -> Booking | None:
        result = await self.session.execute(
            text(
                f"""
                UPDATE bookings SET status = 'cancelled'
                WHERE id = :id
                RETURNING {BOOKING_COLUMNS}
                """
            ),
            {"id": booking_id},
        )
        row = result.mappings().one_or_none()
        return _booking_from_row(row) if row is not None else None

    async def schedule(self, day: date) -> list[Booking]:
        result = await self.session.execute(
            text(
                f"""
                SELECT {BOOKING_COLUMNS}
                FROM bookings
                WHERE booking_date = :day
                ORDER BY booking_time ASC, created_at ASC
                """
            ),
            {"day": day},
        )
        return [_booking_from_row(row) for row in result.mappings()]

    async def count_by_status(self) -> dict[str, int]:
        result = await self.session.execute(
            text("SELECT status, COUNT(*) AS total FROM bookings GROUP BY status")
        )
        return {row["status"]: int(row["total"]) for row in result.mappings()}

    async def export(self, date_from: date | None, date_to: date | None) -> list[Booking]:
        result = await self.session.execute(
            text(
                f"""
                SELECT {BOOKING_COLUMNS}
                FROM bookings
                WHERE (CAST(:date_from AS date) IS NULL OR booking_date >= :date_from)
                  AND (CAST(:date_to AS date) IS NULL OR booking_date <= :date_to)
                ORDER BY booking_date ASC, booking_time ASC
                """
            ),
            {"date_from": date_from, "date_to": date_to},
        )
        return [_booking_from_row(row) for row in result.mappings()]
