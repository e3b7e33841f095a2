# backend/app/domain/errors.py
"""
Domain errors for the booking and account-security core.

Services raise these; the API layer renders them through one exception
handler (see main.py) as {"code", "message", "details"}.
"""
from __future__ import annotations

import math
from typing import Any, Optional


class DomainError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def headers(self) -> dict[str, str] | None:
        return None

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidCredentials(DomainError):
    # Deliberately generic: never says whether the email exists.
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class Unauthenticated(DomainError):
    # Missing, malformed or expired bearer credential.
    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Not authenticated"


class AccountLocked(DomainError):
    status_code = 429
    code = "ACCOUNT_LOCKED"

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = max(1, int(retry_after_seconds))
        wait_minutes = math.ceil(self.retry_after_seconds / 60)
        super().__init__(
            f"Account is temporarily locked. Please try again in {wait_minutes} minutes.",
            details={"retry_after_seconds": self.retry_after_seconds},
        )

    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after_seconds)}


class DuplicateIdentity(DomainError):
    status_code = 409
    code = "DUPLICATE_IDENTITY"
    default_message = "An account with this email already exists"


class TokenInvalid(DomainError):
    status_code = 400
    code = "TOKEN_INVALID"
    default_message = "Token is invalid or has already been used"


class TokenExpired(DomainError):
    status_code = 400
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class ValidationError(DomainError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}", details={"field": field, "reason": reason})


class InvalidTransition(ValidationError):
    status_code = 409
    code = "INVALID_TRANSITION"


class BookingConflict(DomainError):
    status_code = 409
    code = "BOOKING_CONFLICT"
    default_message = "The requested dates overlap an existing reservation"


class Forbidden(DomainError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You are not allowed to perform this action"


class NotFound(DomainError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class InternalError(DomainError):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"
