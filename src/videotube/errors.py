"""
Domain error taxonomy.

Services raise these at the point of detection; the global handler in
`videotube.middleware.error_handler` renders them as JSON with the status code
carried by the class. Messages are safe to show to clients.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for all errors that map to an HTTP response."""

    status_code: int = 500
    error_code: str = "APP_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidInputError(ValidationError):
    """Input is present but not acceptable (bad id format, wrong code)."""

    error_code = "INVALID_INPUT"


class AuthError(AppError):
    """Bad credentials or an invalid, expired, or reused session token."""

    status_code = 401
    error_code = "AUTH_ERROR"


class NotFoundError(AppError):
    """No matching identity, video, or OTP record."""

    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(AppError):
    """A unique field is already taken."""

    status_code = 409
    error_code = "CONFLICT"


class TooManyRequestsError(AppError):
    """Cooldown or lockout window still active."""

    status_code = 429
    error_code = "TOO_MANY_REQUESTS"


class ServerError(AppError):
    """Unexpected store, storage, or delivery failure."""

    status_code = 500
    error_code = "SERVER_ERROR"
