"""Store-level tests against a migrated Postgres database.

The per-date advisory lock and the ``bookings_no_overlap`` exclusion
constraint only exist in Postgres, so the concurrent-admission guarantees
are exercised here and nowhere else. Set ``ALEMBIC_DATABASE_URL`` to run
them; without it this module is skipped and those guarantees go unchecked.
"""
import asyncio
import os
from datetime import date, datetime, timedelta
from uuid import UUID

import psycopg2
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.engine import make_url

from backend.app.db.session import SessionLocal
from backend.app.main import app
from backend.app.services.repository import BookingRepository, OverlapViolation


pytestmark = [
    pytest.mark.asyncio(loop_scope="module"),
    pytest.mark.skipif(
        not os.getenv("ALEMBIC_DATABASE_URL"),
        reason="ALEMBIC_DATABASE_URL not set; needs a migrated Postgres database",
    ),
]

PHONE_PREFIX = "+1999"


def _connect():
    url = make_url(os.environ["ALEMBIC_DATABASE_URL"])
    conn = psycopg2.connect(
        host=url.host or "localhost",
        port=url.port or 5432,
        user=url.username or "app_owner",
        password=url.password,
        dbname=url.database or "barbershop",
    )
    conn.autocommit = True
    return conn


def _open_day(offset: int) -> date:
    day = date.today() + timedelta(days=offset)
    return day + timedelta(days=1) if day.weekday() == 6 else day


@pytest.fixture(autouse=True)
def clean_test_rows():
    yield
    conn = _connect()
    cur = conn.cursor()
    cur.execute("DELETE FROM bookings WHERE phone LIKE %s", (PHONE_PREFIX + "%",))
    cur.close()
    conn.close()


async def test_exclusion_constraint_rejects_overlap():
    day = _open_day(20)
    async with SessionLocal() as session:
        repo = BookingRepository(session)
        async with repo.transaction():
            first = await repo.insert(
                name="Db Guest", phone=f"{PHONE_PREFIX}0001", service="Full Package",
                day=day, start="14:00", duration_minutes=60, created_at=datetime.now(),
            )
        assert first.status == "pending"
        assert first.time == "14:00"

        with pytest.raises(OverlapViolation):
            async with repo.transaction():
                await repo.insert(
                    name="Db Guest 2", phone=f"{PHONE_PREFIX}0002", service="Haircut",
                    day=day, start="14:30", duration_minutes=30, created_at=datetime.now(),
                )

        async with repo.transaction():
            await repo.cancel(UUID(first.id))
        async with repo.transaction():
            second = await repo.insert(
                name="Db Guest 2", phone=f"{PHONE_PREFIX}0002", service="Haircut",
                day=day, start="14:30", duration_minutes=30, created_at=datetime.now(),
            )
        assert [b.id for b in await repo.active_bookings(day)] == [second.id]


async def test_parallel_admission_race():
    day = _open_day(21)
    payloads = [
        {"name": "Parallel A", "phone": f"{PHONE_PREFIX}1001", "service": "Fade", "date": day.isoformat(), "time": "16:00"},
        {"name": "Parallel B", "phone": f"{PHONE_PREFIX}1002", "service": "Haircut", "date": day.isoformat(), "time": "16:00"},
    ]

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        responses = await asyncio.gather(*(client.post("/api/bookings", json=p) for p in payloads))

    status_codes = sorted(response.status_code for response in responses)
    assert status_codes == [201, 409]
    rejected = next(r for r in responses if r.status_code == 409).json()
    assert rejected["message"] == "Time not available"
    assert "16:00" not in rejected["suggestions"]


async def test_status_transitions_persist():
    day = _open_day(22)
    async with SessionLocal() as session:
        repo = BookingRepository(session)
        async with repo.transaction():
            booking = await repo.insert(
                name="Transition Guest", phone=f"{PHONE_PREFIX}2001", service="Beard",
                day=day, start="10:00", duration_minutes=30, created_at=datetime.now(),
            )
        async with repo.transaction():
            confirmed = await repo.confirm(UUID(booking.id))
        async with repo.transaction():
            again = await repo.confirm(UUID(booking.id))

        assert confirmed is not None and confirmed.status == "confirmed"
        assert again is None

        schedule = await repo.schedule(day)
        assert booking.id in [b.id for b in schedule]
        exported = await repo.export(day, day)
        assert [b.id for b in exported if b.id == booking.id] == [booking.id]
