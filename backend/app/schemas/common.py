"""
PetNet Backend: Shared Response Schemas
=========================================

What:  Error, health and plain-message payloads used by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field

# Largest value a 64-bit INTEGER primary key can hold.
MAX_ID = 2**63 - 1


class MessageResponse(BaseModel):
    """Confirmation payload for operations that return no entity (cancel, delete)."""

    message: str = Field(description="Human-readable confirmation")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error:          Machine-readable error kind (e.g. "duplicate_request")
        message:        Human-readable description for display to users
        details:        Extra context; validation errors carry an `errors` list
        request_id:     Correlation ID for tracing this error in server logs
        entity_changed: Always false; errors are raised before any write

    Example:
        {
            "error": "publication_unavailable",
            "message": "This publication is not available for adoption",
            "details": {"publication_id": 7},
            "request_id": "a1b2c3d4",
            "entity_changed": false
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
    entity_changed: bool = Field(
        default=False,
        description="Whether the targeted entity was modified (never true for errors)",
    )


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
