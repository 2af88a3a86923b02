from datetime import date, datetime

from pydantic import BaseModel, Field


class BookingIn(BaseModel):
    # Presence is checked by the admission pipeline so that a missing field
    # gets the same "All fields required" answer as a blank one.
    name: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=32)
    service: str | None = Field(default=None, max_length=64)
    date: str | None = Field(default=None, max_length=32)
    time: str | None = Field(default=None, max_length=16)


class BookingOut(BaseModel):
    id: str
    name: str
    phone: str
    service: str
    date: date
    time: str
    status: str
    created_at: datetime
    duration_minutes: int


class BookingEnvelope(BaseModel):
    success: bool = True
    booking: BookingOut


class AvailabilityOut(BaseModel):
    availableSlots: list[str]


class ScheduleOut(BaseModel):
    date: date
    bookings: list[BookingOut]


class StatsOut(BaseModel):
    completedBookings: int
    pendingBookings: int
    cancelledBookings: int
