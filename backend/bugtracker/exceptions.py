"""
Bug Tracker Backend: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for each error category.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers in main.py turn them into JSON responses.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    BugTrackerError (base)
    ├── ValidationError          → 400 Bad Request (every violation, joined)
    ├── AuthenticationError      → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 Internal Server Error (generic message)
    ├── LLMServiceError          → never reaches a client (fallback tags)
    └── CircuitBreakerOpenError  → never reaches a client (fallback tags)
"""

from typing import Any, Dict, List, Optional, Sequence


class BugTrackerError(Exception):
    """
    Base exception for all bug tracker application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where noted)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BugTrackerError):
    """
    Raised when bug fields fail validation.

    All failing fields are reported together: `messages` keeps the individual
    violations in field order and `message` joins them with ", ", e.g.
    "Title is required, Severity must be Low, Medium, High, or Critical".
    """

    def __init__(
        self,
        messages: Sequence[str] = ("Validation failed",),
        context: Optional[Dict[str, Any]] = None,
    ):
        self.messages: List[str] = list(messages)
        ctx = context or {}
        ctx["errors"] = self.messages
        super().__init__(message=", ".join(self.messages), context=ctx)


class AuthenticationError(BugTrackerError):
    """Missing, malformed or expired bearer token, or an unknown caller."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(BugTrackerError):
    """
    The caller is authenticated but may not perform this action.

    Only raised for deletes: a bug may be deleted by its reporter alone.
    """

    def __init__(
        self,
        message: str = "Not authorized to delete this bug",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BugTrackerError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(BugTrackerError):
    """
    Raised when a database operation fails unexpectedly.

    The client always gets a generic message; the original error type is kept
    in `context` for the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(BugTrackerError):
    """
    The tag model call failed (network, timeout, HTTP status, bad payload).

    Raised by the provider adapters and always caught by the TagGenerator,
    which substitutes the default tags.
    """

    def __init__(
        self,
        message: str = "Tag generation service is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(BugTrackerError):
    """The provider failed too often recently; the call was not attempted."""

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Tag generation is paused after repeated failures. "
            f"It will be retried in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
