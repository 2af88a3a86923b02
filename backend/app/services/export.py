import csv
import io
from collections.abc import Iterable

from backend.app.services.repository import Booking


CSV_COLUMNS = ("id", "name", "phone", "service", "date", "time", "status", "created_at")


def bookings_to_csv(bookings: Iterable[Booking]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for booking in bookings:
        writer.writerow(booking.to_dict())
    return buffer.getvalue()


def export_filename(date_from, date_to) -> str:
    start = date_from.isoformat() if date_from else "start"
    end = date_to.isoformat() if date_to else "latest"
    return f"bookings_{start}_{end}.csv"
