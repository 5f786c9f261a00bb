"""
PetNet Backend: Publication Route Handlers
============================================

What:  CRUD and listings for adoption publications.
How:   Authenticates the caller, lets pydantic validate the body (400 with a
       field-level error list on failure), delegates to PublicationService.
Who:   Called by the frontend marketplace ("Adopt"), the owner dashboard and
       the publication detail page.

Note: /available and /mine are declared before /{publication_id} so the
static segments are not captured by the path parameter.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user_id
from app.database import get_db_session
from app.models.publication import Species
from app.schemas.common import MAX_ID, ErrorResponse, MessageResponse
from app.schemas.publication import (
    AvailablePublicationListResponse,
    PublicationCreate,
    PublicationDetailResponse,
    PublicationListResponse,
    PublicationMutationResponse,
    PublicationUpdate,
)
from app.services.publication_service import publication_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Publications"])

_COMMON_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
_OWNED_ERRORS = {
    **_COMMON_ERRORS,
    403: {"description": "Not the owner", "model": ErrorResponse},
    404: {"description": "Publication not found", "model": ErrorResponse},
}


@router.post(
    "/publications",
    response_model=PublicationMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_COMMON_ERRORS,
    summary="Publish a pet for adoption",
)
async def create_publication(
    body: PublicationCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PublicationMutationResponse:
    return await publication_service.create(db, owner_id=user_id, data=body)


@router.get(
    "/publications/available",
    response_model=AvailablePublicationListResponse,
    responses=_COMMON_ERRORS,
    summary="List publications open for adoption",
)
async def list_available_publications(
    species: Optional[Species] = Query(
        default=None,
        alias="type",
        description="Only show this species (dog, cat, bird, rabbit)",
    ),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AvailablePublicationListResponse:
    return await publication_service.list_available(db, species=species)


@router.get(
    "/publications/mine",
    response_model=PublicationListResponse,
    responses=_COMMON_ERRORS,
    summary="List the caller's own publications",
)
async def list_my_publications(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PublicationListResponse:
    return await publication_service.list_mine(db, owner_id=user_id)


@router.get(
    "/publications/{publication_id}",
    response_model=PublicationDetailResponse,
    responses={**_COMMON_ERRORS, 404: {"description": "Not found", "model": ErrorResponse}},
    summary="Publication detail with owner contact",
)
async def get_publication(
    publication_id: int = Path(gt=0, le=MAX_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PublicationDetailResponse:
    return await publication_service.get_detail(db, publication_id)


@router.put(
    "/publications/{publication_id}",
    response_model=PublicationMutationResponse,
    responses=_OWNED_ERRORS,
    summary="Edit an owned publication",
)
async def edit_publication(
    body: PublicationUpdate,
    publication_id: int = Path(gt=0, le=MAX_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PublicationMutationResponse:
    return await publication_service.edit(
        db, owner_id=user_id, publication_id=publication_id, data=body
    )


@router.delete(
    "/publications/{publication_id}",
    response_model=MessageResponse,
    responses=_OWNED_ERRORS,
    summary="Delete an owned publication with its pet and requests",
)
async def delete_publication(
    publication_id: int = Path(gt=0, le=MAX_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await publication_service.delete(
        db, owner_id=user_id, publication_id=publication_id
    )
