"""
EventHub Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the failure modes of the
       resource handlers.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and a fixed JSON envelope.
Who:   Raised by ResourceService; caught by the handlers in main.py.

Exception Hierarchy:
    EventHubError (base)           → 500 Internal Server Error
    ├── ValidationError            → 400 Bad Request (malformed id)
    ├── NotFoundError              → 404 Not Found (update/delete matched nothing)
    │   └── EmptyResultError       → 404 Not Found (listing matched nothing)
    └── DatabaseError              → 500 Internal Server Error (store failure)

EmptyResultError is not a fault: a listing with no live records answers
404 "No <collection> found" and callers treat it as an empty collection.
"""

from typing import Any, Dict, Optional


class EventHubError(Exception):
    """
    Base exception for all EventHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EventHubError):
    """
    Raised when client input fails validation.

    When:    A path identifier is not a valid record id.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "'abc' is not a valid id",
            "details": {"field": "id"}
        }
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


class NotFoundError(EventHubError):
    """
    Raised when an update or soft-delete targeted nothing.

    When:    PUT matched no record and no upsert happened, or DELETE found no
             live record with the id (including one already deleted).
    HTTP:    404 Not Found

    `resource` is the singular label ("Event"), giving "Event not found".
    """

    def __init__(
        self,
        resource: str = "Record",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class EmptyResultError(NotFoundError):
    """Raised when a listing matched zero records ("No events found")."""

    def __init__(
        self,
        collection: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["collection"] = collection
        super().__init__(resource=collection, context=ctx)
        self.message = f"No {collection} found"
        self.args = (self.message,)


class DatabaseError(EventHubError):
    """
    Raised when a store operation fails.

    When:    Connection lost, driver error, constraint violation, insert not
             acknowledged.
    HTTP:    500 Internal Server Error

    The response message is always generic; driver details go to the log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
