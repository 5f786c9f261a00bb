"""
PetNet Backend: Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for every failure the API can report.
How:   Each exception carries a human-readable message, a machine-readable
       `code`, and an optional context dict. Global exception handlers
       (registered in main.py) turn them into JSON error responses.
Who:   Raised by services and the auth dependency; caught by global handlers.

Exception Hierarchy:
    PetNetError (base)
    ├── ValidationError               → 400 (field-level error list)
    ├── AuthenticationError           → 401
    ├── ForbiddenError                → 403 (authenticated, not the owner)
    ├── NotFoundError                 → 404
    ├── ConflictError                 → 400 (valid input, business rule violated)
    │   ├── PublicationUnavailableError
    │   ├── SelfRequestError
    │   ├── DuplicateRequestError
    │   ├── RequestNotPendingError
    │   ├── ApprovedRequestImmutableError
    │   ├── AvailabilityConflictError
    │   └── ConcurrentModificationError
    ├── DatabaseError                 → 500
    └── NotificationError             (internal; reported, never rolls back)

Business errors (validation, not found, forbidden, conflict) are always
raised before any write, so a caller receiving one knows nothing changed.
"""

from typing import Any, Dict, List, Optional


class PetNetError(Exception):
    """
    Base exception for all PetNet application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
        code:     Machine-readable error kind, stable across releases
    """

    code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PetNetError):
    """
    Raised when client input is missing or malformed.

    `errors` is a list of {"field", "message"} entries; a single-field
    error can be built with the `field` shortcut.
    """

    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if errors is None:
            errors = [{"field": field, "message": message}] if field else []
        ctx["errors"] = errors
        super().__init__(message=message, context=ctx)
        self.field = field
        self.errors = errors


class AuthenticationError(PetNetError):
    """Missing, malformed, expired or badly signed bearer token."""

    code = "authentication_error"

    def __init__(
        self,
        message: str = "Authorization token missing or invalid",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(PetNetError):
    """Authenticated user does not own the resource being changed."""

    code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PetNetError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so routes never deal with None.
    """

    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


# ══════════════════════════════════════════════════════════════════════════
# Conflicts: valid requests that violate a business invariant
# ══════════════════════════════════════════════════════════════════════════

class ConflictError(PetNetError):
    """
    Base for business-rule violations.

    Every subclass maps to HTTP 400 and carries its own `code`, so clients
    can tell "publication unavailable" from "duplicate request" without
    parsing messages.
    """

    code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PublicationUnavailableError(ConflictError):
    code = "publication_unavailable"

    def __init__(self, publication_id: int):
        super().__init__(
            message="This publication is not available for adoption",
            context={"publication_id": publication_id},
        )


class SelfRequestError(ConflictError):
    code = "self_request"

    def __init__(self, publication_id: int):
        super().__init__(
            message="You cannot request adoption of your own publication",
            context={"publication_id": publication_id},
        )


class DuplicateRequestError(ConflictError):
    code = "duplicate_request"

    def __init__(self, publication_id: int):
        super().__init__(
            message="You already sent a request for this publication",
            context={"publication_id": publication_id},
        )


class RequestNotPendingError(ConflictError):
    code = "request_not_pending"

    def __init__(self, request_id: int, state: str):
        super().__init__(
            message="Only pending requests can be cancelled",
            context={"request_id": request_id, "state": state},
        )


class ApprovedRequestImmutableError(ConflictError):
    code = "approved_request_immutable"

    def __init__(self, request_id: int):
        super().__init__(
            message="Cannot modify an approved request",
            context={"request_id": request_id},
        )


class AvailabilityConflictError(ConflictError):
    """Owner tried to set an availability that contradicts the request history."""

    code = "availability_conflict"

    def __init__(self, publication_id: int, requested: str, derived: str):
        super().__init__(
            message=(
                f"Availability cannot be set to '{requested}': it is '{derived}' "
                "based on the publication's adoption requests"
            ),
            context={
                "publication_id": publication_id,
                "requested": requested,
                "derived": derived,
            },
        )


class ConcurrentModificationError(ConflictError):
    code = "concurrent_modification"

    def __init__(self, request_id: int):
        super().__init__(
            message="The request was modified by another operation. Reload and try again.",
            context={"request_id": request_id},
        )


# ══════════════════════════════════════════════════════════════════════════
# Internal failures
# ══════════════════════════════════════════════════════════════════════════

class DatabaseError(PetNetError):
    """
    Unexpected persistence failure.

    The client always gets a generic message; details go to the server log.
    """

    code = "database_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotificationError(PetNetError):
    """
    Email delivery failed after all retries.

    Raised by the notification sink and caught by the request lifecycle,
    which logs it and reports a failed notification next to the committed
    state change.
    """

    code = "notification_failed"

    def __init__(
        self,
        message: str = "The notification email could not be delivered",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
