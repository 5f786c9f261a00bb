"""
PetNet Backend: Adoption Request Schemas
==========================================

What:  Pydantic models for the /api/requests endpoints.

Input models are deliberately loose (`publicationId` may arrive as a string,
fields may be missing): AdoptionRequestService owns the ordered
precondition checks and reports malformed input as ValidationError with a
field-level list, the same shape as schema-level failures.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.models.adoption_request import RequestState

# ══════════════════════════════════════════════════════════════════════════
# Input Models
# ══════════════════════════════════════════════════════════════════════════


class AdoptionRequestCreate(BaseModel):
    publication_id: Optional[Union[int, str]] = Field(
        default=None,
        alias="publicationId",
        description="Target publication ID",
    )
    message: Optional[str] = Field(default=None, description="Message to the owner")

    model_config = {"populate_by_name": True}


class StatusChangeRequest(BaseModel):
    target_state: Optional[str] = Field(
        default=None,
        alias="targetState",
        description="pending, approved or rejected",
    )

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AdoptionRequestResponse(BaseModel):
    id: int
    message: str
    state: RequestState
    requester_id: int
    publication_id: int

    model_config = {"from_attributes": True}


class SubmitRequestResponse(BaseModel):
    message: str = "Request sent successfully"
    request: AdoptionRequestResponse


class NotificationOutcome(BaseModel):
    """
    Result of the post-commit email to the requester.

    sent     Delivered to the SMTP server
    failed   Delivery failed after retries; the state change still stands
    skipped  Nothing to send (unchanged state, or email delivery disabled)
    """

    status: Literal["sent", "failed", "skipped"]
    message: str


class StatusChangeResponse(BaseModel):
    """
    PATCH /api/requests/{id}/status.

    `changed` is false when the request already had the target state; no
    write happened and no email was sent.
    """

    message: str
    changed: bool
    request: AdoptionRequestResponse
    notification: NotificationOutcome


class RequesterSummary(BaseModel):
    id: int
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class ReceivedRequestItem(BaseModel):
    id: int
    requester: RequesterSummary
    pet_name: str
    state: RequestState
    message: str
    publication_id: int


class ReceivedRequestListResponse(BaseModel):
    requests: List[ReceivedRequestItem]
    message: Optional[str] = None


class SentRequestActions(BaseModel):
    cancel: Optional[str] = Field(
        default=None,
        description="Cancel link; present only while the request is pending",
    )
    detail: str = Field(description="Link to the publication detail")


class SentRequestItem(BaseModel):
    id: int
    pet_name: str
    state: RequestState
    message: str
    publication_id: int
    actions: SentRequestActions


class SentRequestListResponse(BaseModel):
    requests: List[SentRequestItem]
    message: Optional[str] = None
