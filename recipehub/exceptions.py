"""
RecipeHub Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and a structured JSON body.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    RecipeHubError (base)             → 500
    ├── ValidationError               → 400 Bad Request
    ├── UnauthenticatedError          → 401 Unauthorized (bad credentials)
    ├── AuthError                     → 403 Forbidden (missing/invalid token)
    ├── ForbiddenError                → 403 Forbidden (no permission)
    ├── NotFoundError                 → 404 Not Found
    ├── ConflictError                 → 409 Conflict (CAS retries exhausted)
    ├── RateLimitExceededError        → 429 Too Many Requests
    ├── MediaServiceError             → 503 Service Unavailable
    ├── CircuitBreakerOpenError       → 503 Service Unavailable
    ├── MediaStorageError             → 500 Internal Server Error
    └── DatabaseError                 → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class RecipeHubError(Exception):
    """
    Base exception for all RecipeHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for 4xx details)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RecipeHubError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, malformed ingredients, rating outside
             1..5, comment index out of range, bad image type or size.
    HTTP:    400 Bad Request
    """

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


class UnauthenticatedError(RecipeHubError):
    """
    Raised when login credentials do not match a user.

    HTTP:    401 Unauthorized
    The message never says whether the username or the password was wrong.
    """

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthError(RecipeHubError):
    """
    Raised when a protected endpoint gets no bearer token or a token that
    fails signature/expiry verification.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Invalid token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(RecipeHubError):
    """
    Raised when an authenticated user lacks permission for an action.

    When:    Editing someone else's recipe, deleting a recipe without being
             owner or admin, deleting a comment without being admin.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RecipeHubError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PUT/DELETE /recipes/{id} for an id that was never allocated
             or has been deleted.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(RecipeHubError):
    """
    Raised when a compare-and-swap write keeps losing to concurrent writers.

    HTTP:    409 Conflict; the client can simply retry.
    """

    def __init__(
        self,
        message: str = "The recipe was modified concurrently. Please retry.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MediaServiceError(RecipeHubError):
    """
    Raised when the media host rejects or fails an upload after all retries.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Image hosting service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(RecipeHubError):
    """
    Raised when the media host circuit breaker is OPEN.

    HTTP:    503 Service Unavailable, with Retry-After.

    State machine:
        CLOSED → failures reach threshold → OPEN (reject for recovery_time)
        → HALF-OPEN (one trial call) → CLOSED on success, OPEN on failure
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Image hosting service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class MediaStorageError(RecipeHubError):
    """
    Raised when the local media backend cannot write to disk.

    HTTP:    500 Internal Server Error (file system paths are never returned)
    """

    def __init__(
        self,
        message: str = "Failed to save uploaded image. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(RecipeHubError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The client always gets a generic message; the context is logged server-side.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(RecipeHubError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with Retry-After.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
