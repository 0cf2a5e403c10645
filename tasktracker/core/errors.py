"""
Application error taxonomy.

Every failure a request can end in is an AppError subclass carrying the
HTTP status and the machine-readable code that goes into the response
envelope. Handlers in `tasktracker.api.app` turn them into JSON.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map onto an error envelope."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **extra: Any,
    ):
        self.message = message or self.message
        self.code = code or self.code
        self.errors = errors
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Envelope body for this error."""
        body: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.errors is not None:
            body["errors"] = self.errors
        body.update(self.extra)
        return body


# =============================================================================
# 400
# =============================================================================


class ValidationFailedError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation failed"


class InvalidIdError(AppError):
    status_code = 400
    code = "INVALID_ID"
    message = "Invalid ID"


class InvalidCurrentPasswordError(AppError):
    status_code = 400
    code = "INVALID_CURRENT_PASSWORD"
    message = "Current password is incorrect"


class CannotDeleteSelfError(AppError):
    status_code = 400
    code = "CANNOT_DELETE_SELF"
    message = "You cannot delete your own account"


# =============================================================================
# 401
# =============================================================================


class AuthError(AppError):
    """Anything that leaves the request without an authenticated principal."""

    status_code = 401
    code = "NOT_AUTHENTICATED"
    message = "Not authenticated"


class MissingTokenError(AuthError):
    code = "MISSING_TOKEN"
    message = "Access token required"


class MissingRefreshTokenError(AuthError):
    code = "MISSING_REFRESH_TOKEN"
    message = "Refresh token not found"


class InvalidTokenError(AuthError):
    code = "INVALID_TOKEN"
    message = "Invalid token"


class ExpiredTokenError(AuthError):
    code = "TOKEN_EXPIRED"
    message = "Token has expired"


class PrincipalUnavailableError(AuthError):
    """
    Token is fine but the account behind it is gone or deactivated.

    Same status as a bad token; only the code and message differ.
    """

    code = "USER_NOT_FOUND"
    message = "User not found"

    @classmethod
    def not_found(cls) -> PrincipalUnavailableError:
        return cls()

    @classmethod
    def inactive(cls) -> PrincipalUnavailableError:
        return cls("User is deactivated", code="USER_INACTIVE")


class InvalidCredentialsError(AuthError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


# =============================================================================
# 403 / 404 / 405 / 409
# =============================================================================


class InsufficientPermissionsError(AppError):
    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"
    message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class TaskNotFoundError(NotFoundError):
    code = "TASK_NOT_FOUND"
    message = "Task not found"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"
    message = "User not found"


class MethodNotAllowedError(AppError):
    status_code = 405
    code = "METHOD_NOT_ALLOWED"
    message = "Method not allowed"


class ConflictError(AppError):
    status_code = 409
    code = "DUPLICATE_ERROR"
    message = "A record with this value already exists"


class DuplicateError(ConflictError):
    pass


class UserExistsError(ConflictError):
    code = "USER_EXISTS"
    message = "A user with this email already exists"


class EmailInUseError(ConflictError):
    code = "EMAIL_IN_USE"
    message = "A user with this email already exists"
