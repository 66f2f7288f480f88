"""Domain errors raised by the service layer.

Each error carries the HTTP status it maps to and any extra fields the client
needs to redirect the user; the API layer renders them as
``{"message": ..., **extra}``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AuthAppError(Exception):
    status_code: int = 500
    message: str = "Internal server error"
    code: str = "error"

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationFailed(AuthAppError):
    status_code = 400
    message = "Invalid request data"
    code = "invalid_request"


class InvalidUpload(ValidationFailed):
    message = "Only image files are allowed"
    code = "invalid_upload"


class InvalidCredentials(AuthAppError):
    status_code = 401
    message = "Invalid credentials"
    code = "invalid_credentials"


class VerificationFailed(AuthAppError):
    """The external identity assertion could not be validated."""

    status_code = 401
    message = "Invalid OAuth token"
    code = "verification_failed"


class IncorrectPassword(AuthAppError):
    status_code = 401
    message = "Current password is incorrect"
    code = "incorrect_password"


class NoPasswordSet(AuthAppError):
    status_code = 400
    message = "Password reset is not available for OAuth accounts"
    code = "no_password"


class Forbidden(AuthAppError):
    status_code = 403
    message = "Not allowed"
    code = "forbidden"


class UserNotFound(AuthAppError):
    status_code = 404
    message = "User not found"
    code = "not_found"


class AccountNotFound(AuthAppError):
    """No account matches the external identity and no profile was supplied."""

    status_code = 404
    message = "User not found. Please create a new account."
    code = "requires_new_account"

    def __init__(self) -> None:
        super().__init__(requiresNewAccount=True)


class ConflictRequiresPassword(AuthAppError):
    status_code = 409
    code = "requires_password"

    def __init__(self, email: str) -> None:
        super().__init__(
            f"Email {email} is already registered with a password. "
            "Please use your password to sign in.",
            requiresPassword=True,
            email=email,
        )


class ConflictDifferentProvider(AuthAppError):
    status_code = 409
    code = "different_provider"

    def __init__(self, email: str, existing_provider: str) -> None:
        super().__init__(
            f"Email {email} is already associated with a {existing_provider} account. "
            f"Please use {existing_provider} to sign in.",
            existingProvider=existing_provider,
        )


class DuplicateEmail(AuthAppError):
    """Signup attempted with an email that already has an account."""

    status_code = 400
    message = "User already exists"
    code = "duplicate_email"

    def __init__(self, email: str, existing_provider: Optional[str] = None) -> None:
        if existing_provider:
            self.status_code = 409
            super().__init__(
                f"Email {email} is already associated with a {existing_provider} account. "
                f"Please use {existing_provider} to sign in.",
                existingProvider=existing_provider,
            )
        else:
            super().__init__()


class AccountConflict(AuthAppError):
    """A concurrent write won the race on a unique account key."""

    status_code = 409
    message = "An account with this email was just created. Please try again."
    code = "account_conflict"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, retryable=True)


class UploadFailed(AuthAppError):
    status_code = 500
    message = "Failed to upload profile picture. Please try again."
    code = "upload_failed"


class StoreUnavailable(AuthAppError):
    """The account store could not be reached; surfaced as an opaque 500."""

    status_code = 500
    message = "Internal server error"
    code = "store_unavailable"


__all__ = [
    "AccountConflict",
    "AccountNotFound",
    "AuthAppError",
    "ConflictDifferentProvider",
    "ConflictRequiresPassword",
    "DuplicateEmail",
    "Forbidden",
    "IncorrectPassword",
    "InvalidCredentials",
    "InvalidUpload",
    "NoPasswordSet",
    "StoreUnavailable",
    "UploadFailed",
    "UserNotFound",
    "ValidationFailed",
    "VerificationFailed",
]
