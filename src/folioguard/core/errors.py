"""Error handling module for folioguard.

This module defines error codes, exception classes, and response models.

Error Response Format:
{
    "success": false,
    "error": "Admin privileges required",
    "code": "FORBIDDEN_ADMIN",
    "redirectTo": "/"
}

Usage:
    from folioguard.core.errors import UnauthenticatedError, RateLimitedError

    # Raise with default message
    raise UnauthenticatedError()

    # Raise with retry hint
    raise RateLimitedError(retry_after=120)
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Error codes."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN_ADMIN = "FORBIDDEN_ADMIN"
    RATE_LIMITED = "RATE_LIMITED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Error response body returned to API clients."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    code: str
    redirect_to: str | None = Field(default=None, alias="redirectTo")
    retry_after: int | None = Field(default=None, alias="retryAfter")

    def to_content(self) -> dict:
        """Serialize with wire names, omitting unset hints."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ConfigurationError(Exception):
    """Fatal startup error: required configuration is missing or invalid.

    Raised while building the service container, never at request time.
    """


class FolioGuardError(Exception):
    """Base exception for folioguard.

    All request-time errors inherit from this class so that FastAPI
    exception handlers can turn them into well-defined HTTP responses.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code to return
        redirect_to: Optional path hint for browser clients
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int,
        redirect_to: str | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.redirect_to = redirect_to
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=self.message,
            code=self.code.value,
            redirect_to=self.redirect_to,
        )


class InvalidCredentialsError(FolioGuardError):
    """401 Unauthorized - Wrong identifier or password.

    The message never reveals which of the two was wrong.
    """

    def __init__(self, message: str = "Invalid admin credentials") -> None:
        super().__init__(ErrorCode.INVALID_CREDENTIALS, message, 401)


class UnauthenticatedError(FolioGuardError):
    """401 Unauthorized - No valid session."""

    def __init__(
        self,
        message: str = "Authentication required",
        redirect_to: str | None = None,
    ) -> None:
        super().__init__(ErrorCode.UNAUTHENTICATED, message, 401, redirect_to)


class UnauthorizedAdminError(FolioGuardError):
    """403 Forbidden - Authenticated but not the authorized admin identity."""

    def __init__(
        self,
        message: str = "Admin privileges required",
        redirect_to: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(ErrorCode.FORBIDDEN_ADMIN, message, 403, redirect_to)


class RateLimitedError(FolioGuardError):
    """429 Too Many Requests - Rate limit exceeded."""

    def __init__(
        self,
        retry_after: int,
        message: str = "Too many authentication attempts, try again later",
    ) -> None:
        self.retry_after = retry_after
        super().__init__(ErrorCode.RATE_LIMITED, message, 429)

    def to_response(self) -> ErrorResponse:
        response = super().to_response()
        response.retry_after = self.retry_after
        return response


class StoreUnavailableError(FolioGuardError):
    """500 Internal Server Error - Session or audit store unreachable."""

    def __init__(self, message: str = "Authentication store unavailable") -> None:
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message, 500)


class InternalError(FolioGuardError):
    """500 Internal Server Error - Unexpected error."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(ErrorCode.INTERNAL_ERROR, message, 500)
