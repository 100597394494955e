"""
Errors raised by the appointment service and rendered by the API as
``{"error": message}`` with the matching HTTP status.
"""


class BookingError(Exception):
    """Base exception for booking errors"""
    status_code = 500
    default_message = "booking error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookingError):
    """Raised when request input is missing or malformed"""
    status_code = 400
    default_message = "invalid request"


class ConflictError(BookingError):
    """Raised when the requested slot is already booked"""
    status_code = 409
    default_message = "slot already booked"


class NotFoundError(BookingError):
    """Raised when no appointment exists for the given id"""
    status_code = 404
    default_message = "appointment not found"


class MethodNotAllowedError(BookingError):
    """Raised when the HTTP method is not served on the resource"""
    status_code = 405
    default_message = "method not allowed"


class InternalError(BookingError):
    """Raised on store failures and anything unexpected"""
    status_code = 500
    default_message = "server error"
