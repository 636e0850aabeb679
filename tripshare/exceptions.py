"""
TripShare Backend — Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and messages that never leak internal details.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.

Exception Hierarchy:
    TripShareError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthenticatedError     → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── TransientStoreError      → 500 (storage conflict/unavailable after retry)
    ├── InvariantViolationError  → 500 (counter/membership divergence; CRITICAL log)
    └── DatabaseError            → 500 Internal Server Error

Races on the like toggle (duplicate create, already-removed delete) are not
exceptions at all. The stores report them as outcomes and the coordinator
absorbs them.
"""

from typing import Any, Dict, Optional


class TripShareError(Exception):
    """
    Base exception for all TripShare application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TripShareError):
    """
    Raised when client input fails a business rule.

    HTTP:    400 Bad Request
    Schema-level problems are still reported by FastAPI as 422.
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


class UnauthenticatedError(TripShareError):
    """
    Raised when the caller has no verified identity.

    Raised by the identity gate before any storage access happens.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(TripShareError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that
    into this exception so routes stay free of status-code logic.
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


class TransientStoreError(TripShareError):
    """
    Raised when storage could not complete a unit of work for transient reasons.

    When:    The database is unreachable, or a transaction kept conflicting
             after the coordinator's single retry.
    HTTP:    500 Internal Server Error (the client may simply try again)
    """

    def __init__(
        self,
        message: str = "The request could not be completed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvariantViolationError(TripShareError):
    """
    Raised when the denormalized like counter disagrees with the like rows.

    When:    A counter adjustment would go negative, or a read-time audit finds
             the stored count differs from the number of like records.
    HTTP:    500 Internal Server Error

    This means some code path wrote the counter outside the coordinator.
    It is logged at CRITICAL on the `tripshare.invariants` logger so it can
    be alerted on separately from ordinary failures.
    """

    def __init__(
        self,
        message: str = "Engagement counter is inconsistent with its records",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(TripShareError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL, constraint
    names and driver errors are logged server-side only.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
