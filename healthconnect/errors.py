"""
Application error taxonomy

Services raise these; ``main.py`` maps every ``AppError`` to an HTTP
status and a stable ``error`` code the client can branch on.
"""

from datetime import datetime
from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    code = "InternalError"
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return None

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.code, "message": self.message}
        body.update(self.extra)
        return body


class ValidationError(AppError):
    status_code = 400
    code = "ValidationError"
    default_message = "Invalid request"


class DuplicateAccount(AppError):
    status_code = 400
    code = "DuplicateAccount"
    default_message = "User already exists with this email"


class InvalidCredentials(AppError):
    status_code = 401
    code = "InvalidCredentials"
    default_message = "Invalid credentials"


class EmailNotVerified(AppError):
    status_code = 400
    code = "EmailNotVerified"
    default_message = "Email not verified. Please verify your email first."

    def __init__(self, email: str):
        super().__init__(requiresVerification=True, email=email)


class AccountSuspended(AppError):
    status_code = 403
    code = "AccountSuspended"
    default_message = "Account suspended"

    def __init__(self, reason: Optional[str], suspended_at: Optional[datetime]):
        super().__init__(
            suspended=True,
            suspensionReason=reason
            or "Your account has been suspended by an administrator. Please contact support.",
            suspendedAt=suspended_at.isoformat() if suspended_at else None,
        )


class RateLimited(AppError):
    status_code = 429
    code = "RateLimited"

    def __init__(self, wait_seconds: int):
        self.wait_seconds = max(1, int(wait_seconds))
        super().__init__(
            f"Please wait {self.wait_seconds} seconds before requesting a new code",
            waitTime=self.wait_seconds,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.wait_seconds)}


class InvalidOrExpiredCode(AppError):
    status_code = 400
    code = "InvalidOrExpiredCode"
    default_message = "Invalid or expired OTP"


class ResetLimitExceeded(AppError):
    status_code = 403
    code = "ResetLimitExceeded"
    default_message = (
        "Password reset attempt already completed. You cannot reset your password again."
    )

    def __init__(self, reset_count: int):
        super().__init__(resetLimitReached=True, resetCount=reset_count)


class NotAuthenticated(AppError):
    status_code = 401
    code = "NotAuthenticated"
    default_message = "Not authenticated"


class NotAuthorized(AppError):
    status_code = 403
    code = "NotAuthorized"
    default_message = "Not authorized to access this resource"


class NotAPatient(NotAuthorized):
    code = "NotAPatient"
    default_message = "Only patients can create appointments"


class NotFound(AppError):
    status_code = 404
    code = "NotFound"
    default_message = "Not found"


class DoctorNotFound(NotFound):
    code = "DoctorNotFound"
    default_message = "Doctor not found"


class SlotUnavailable(AppError):
    status_code = 409
    code = "SlotUnavailable"
    default_message = "Selected slot is not available"


class InvalidStatusTransition(AppError):
    status_code = 409
    code = "InvalidStatusTransition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change appointment status from '{current}' to '{requested}'",
            currentStatus=current,
            requestedStatus=requested,
        )


class InternalError(AppError):
    pass
