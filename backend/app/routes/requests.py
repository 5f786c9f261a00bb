"""
PetNet Backend: Adoption Request Route Handlers
=================================================

What:  Submit, cancel, decide and list adoption requests.
How:   Thin wrappers over AdoptionRequestService. Bodies are parsed loosely
       (see schemas/adoption_request.py) and the service runs the ordered
       precondition checks, so the first failing rule decides the response.
"""

import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user_id
from app.database import get_db_session
from app.schemas.adoption_request import (
    AdoptionRequestCreate,
    ReceivedRequestListResponse,
    SentRequestListResponse,
    StatusChangeRequest,
    StatusChangeResponse,
    SubmitRequestResponse,
)
from app.schemas.common import MAX_ID, ErrorResponse, MessageResponse
from app.services.adoption_request_service import adoption_request_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Adoption Requests"])

_ERRORS = {
    400: {"description": "Invalid input or business rule violated", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Not allowed", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.post(
    "/requests",
    response_model=SubmitRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Ask to adopt the pet of an available publication",
)
async def submit_request(
    body: AdoptionRequestCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> SubmitRequestResponse:
    return await adoption_request_service.submit(
        db,
        requester_id=user_id,
        publication_id=body.publication_id,
        message=body.message,
    )


@router.get(
    "/requests/received",
    response_model=ReceivedRequestListResponse,
    responses=_ERRORS,
    summary="Requests on the caller's publications",
)
async def list_received_requests(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ReceivedRequestListResponse:
    return await adoption_request_service.list_received(db, owner_id=user_id)


@router.get(
    "/requests/sent",
    response_model=SentRequestListResponse,
    responses=_ERRORS,
    summary="Requests sent by the caller",
)
async def list_sent_requests(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> SentRequestListResponse:
    return await adoption_request_service.list_sent(db, requester_id=user_id)


@router.patch(
    "/requests/{request_id}/status",
    response_model=StatusChangeResponse,
    responses=_ERRORS,
    summary="Approve, reject or reopen a request (publication owner only)",
)
async def change_request_status(
    body: StatusChangeRequest,
    request_id: int = Path(gt=0, le=MAX_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> StatusChangeResponse:
    return await adoption_request_service.change_status(
        db,
        owner_id=user_id,
        request_id=request_id,
        target_state=body.target_state,
    )


@router.delete(
    "/requests/{request_id}",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Cancel one's own pending request",
)
async def cancel_request(
    request_id: int = Path(gt=0, le=MAX_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await adoption_request_service.cancel(
        db, requester_id=user_id, request_id=request_id
    )
