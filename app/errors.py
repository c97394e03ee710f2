"""
Failures raised by the booking core.

Every error carries the HTTP status and a stable ``code`` the API layer
reports. Only ConcurrencyError is worth retrying as-is.
"""


class BookingError(Exception):
    status_code = 400
    code = "booking_error"
    retryable = False

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidRangeError(BookingError):
    code = "invalid_range"


class CapacityExceededError(BookingError):
    code = "capacity_exceeded"


class DateConflictError(BookingError):
    status_code = 409
    code = "date_conflict"


class InvalidTransitionError(BookingError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, current, target, message=None):
        super().__init__(message or f"Cannot change booking status from {current} to {target}")
        self.current = current
        self.target = target


class ListingInUseError(BookingError):
    status_code = 409
    code = "listing_in_use"


class NotAuthorizedError(BookingError):
    status_code = 403
    code = "not_authorized"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"


class ConcurrencyError(BookingError):
    status_code = 503
    code = "concurrency"
    retryable = True
