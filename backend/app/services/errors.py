"""Rejections raised by the booking services.

Each error carries the short message shown to the caller and the HTTP status
it maps to. The app renders them as ``{"message": ..., "suggestions": [...]}``.
"""


class BookingError(Exception):
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None, *, suggestions: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.suggestions = suggestions
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload: dict = {"message": self.message}
        if self.suggestions is not None:
            payload["suggestions"] = list(self.suggestions)
        return payload


class ValidationError(BookingError):
    status_code = 400
    default_message = "Invalid request"


class RuleViolation(BookingError):
    status_code = 400
    default_message = "Date not allowed"


class CapacityError(BookingError):
    status_code = 409
    default_message = "Day fully booked"


class RateLimited(BookingError):
    status_code = 429
    default_message = "Please wait before booking again"


class ConflictError(BookingError):
    status_code = 409
    default_message = "Time not available"


class NotFoundError(BookingError):
    status_code = 404
    default_message = "Booking not found"


class Unauthorized(BookingError):
    status_code = 401
    default_message = "Unauthorized"


class InternalError(BookingError):
    status_code = 500
    default_message = "Server error"


class ServiceUnavailable(BookingError):
    status_code = 503
    default_message = "Service unavailable"
