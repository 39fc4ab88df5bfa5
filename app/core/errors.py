"""Error taxonomy shared by the access control chain and the policies.

Checks raise these; the handlers registered in ``app.main`` turn each one
into its HTTP status and a ``{"detail": ...}`` body.
"""

from typing import Any


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied"


class QuotaExceeded(Forbidden):
    default_message = "Note limit reached for your subscription plan"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class InvalidRequest(AppError):
    status_code = 400
    default_message = "Invalid request"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests from this tenant. Please try again later."

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after
