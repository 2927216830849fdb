"""
Quotebook Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every failure the services surface.
How:   Each exception carries a human-readable message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.
Who:   Raised by the gateway, the session/preference stores and the services;
       caught by the global handlers.

Exception Hierarchy:
    QuotebookError (base)
    ├── ValidationError            → 400 Bad Request (detected locally, no network call)
    │   ├── InvalidInputError      → 400 (empty required field)
    │   ├── InvalidEmailError      → 400 (email format mismatch)
    │   └── PasswordTooShortError  → 400 (fewer than 6 characters)
    ├── ApiError                   → 502 Bad Gateway (remote backend said no)
    │   └── InvalidResponseError   → 502 (response was not usable HTTP)
    ├── NotAuthenticatedError      → 401 Unauthorized
    └── PreferenceStorageError     → 500 Internal Server Error

Remote errors keep the server's text verbatim in `message`; callers show it
to the user as-is.
"""

from typing import Any, Dict, Optional


class QuotebookError(Exception):
    """
    Base exception for all Quotebook application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where noted)
    """

    # Machine-readable code used in the JSON error body
    code = "quotebook_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(QuotebookError):
    """
    Raised when user input fails local validation.

    When:    Empty fields, malformed email, short password, blank collection name.
    HTTP:    400 Bad Request

    Validation always runs before the gateway is touched, so a ValidationError
    guarantees that no request reached the backend.
    """

    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidInputError(ValidationError):
    """A required field (email, password, name) was empty."""

    code = "invalid_input"

    def __init__(self, field: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Please fill in all fields", field=field, context=context)


class InvalidEmailError(ValidationError):
    """The email did not match `local-part@domain.tld`."""

    code = "invalid_email"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Please enter a valid email address",
            field="email",
            context=context,
        )


class PasswordTooShortError(ValidationError):
    """The password had fewer than the minimum number of characters."""

    code = "password_too_short"

    def __init__(self, min_length: int = 6, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["min_length"] = min_length
        super().__init__(
            message=f"Password must be at least {min_length} characters",
            field="password",
            context=ctx,
        )
        self.min_length = min_length


class ApiError(QuotebookError):
    """
    Raised when the remote backend rejects a call or cannot be reached.

    What:    Non-2xx status, undecodable body, or transport failure.
    HTTP:    502 Bad Gateway

    `message` is the server's own text when it provided one (`message`, `msg`,
    `error`, `error_description`), otherwise a generic
    "Request failed with status N". `status_code` is None for transport failures.
    """

    code = "api_error"

    def __init__(
        self,
        message: str = "Request failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class InvalidResponseError(ApiError):
    """
    Raised when the backend answered with something that is not usable HTTP.

    When:    Protocol violations or a body that cannot be decoded at the
             transport level (broken compression, truncated stream).
    """

    code = "invalid_response"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid response from server", context=context)


class NotAuthenticatedError(QuotebookError):
    """
    Raised when an operation needs a signed-in user and there is none.

    HTTP:    401 Unauthorized
    """

    code = "not_authenticated"

    def __init__(
        self,
        message: str = "You need to sign in first",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PreferenceStorageError(QuotebookError):
    """
    Raised when the local preference file cannot be written.

    When:    Disk full, permission denied, directory not writable.
    HTTP:    500 Internal Server Error
    """

    code = "storage_error"

    def __init__(
        self,
        message: str = "Could not save local preferences",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
