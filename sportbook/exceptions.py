# sportbook/exceptions.py
"""Errors raised by the services and rendered by the handler in main.py."""
from fastapi import status


class BookingAppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(BookingAppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(BookingAppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class Unauthenticated(BookingAppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(detail)


class InvalidTransition(BookingAppError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class Conflict(BookingAppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ValidationError(BookingAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
