"""
PetNet Backend: Publication Service (Availability Manager)
============================================================

What:  Create, edit, delete and list adoption publications and their pets.
How:   Each operation validates ownership and existence first, then performs
       its writes on the caller's session. The session dependency commits
       (see get_db_session), so a publication and its pet are always written
       in the same transaction.
Who:   Called by the /api/publications router.

Availability Invariant:
    A publication is `unavailable` exactly when one of its adoption requests
    is `approved`. Only the request lifecycle flips it (on approval); edits
    may restate it but never contradict it:

        approved request exists?   derived availability
        ────────────────────────   ────────────────────
        yes                        unavailable
        no                         available
"""

import logging
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import (
    AvailabilityConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    PetNetError,
    ValidationError,
)
from app.models.adoption_request import AdoptionRequest, RequestState
from app.models.publication import Availability, Pet, Publication, Species
from app.schemas.common import MAX_ID, MessageResponse
from app.schemas.publication import (
    AvailablePublicationItem,
    AvailablePublicationListResponse,
    PublicationCreate,
    PublicationDetailResponse,
    PublicationListResponse,
    PublicationMutationResponse,
    PublicationResponse,
    PublicationUpdate,
)

logger = logging.getLogger(__name__)

NO_PUBLICATIONS_MESSAGE = "No animals are available for adoption right now"


def _require_positive_id(value: int, field: str = "id") -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_ID:
        raise ValidationError(
            message="Invalid publication ID",
            field=field,
        )


class PublicationService:
    """
    Business logic for publications.

    Error Handling Strategy:
        Business errors (NotFoundError, ForbiddenError, ValidationError,
        AvailabilityConflictError) are raised before any write and propagate
        unchanged. SQLAlchemy failures are logged and wrapped in DatabaseError
        so no driver detail reaches the client.
    """

    async def _get_owned(
        self,
        db: AsyncSession,
        owner_id: int,
        publication_id: int,
        action: str,
    ) -> Publication:
        result = await db.execute(
            select(Publication)
            .options(selectinload(Publication.pet))
            .where(Publication.id == publication_id)
        )
        publication = result.scalar_one_or_none()
        if publication is None:
            raise NotFoundError(resource="publication", resource_id=publication_id)
        if publication.owner_id != owner_id:
            raise ForbiddenError(
                message=f"You are not allowed to {action} this publication",
                context={"publication_id": publication_id},
            )
        return publication

    async def derived_availability(
        self, db: AsyncSession, publication_id: int
    ) -> Availability:
        """Availability implied by the publication's request history."""
        has_approved = await db.scalar(
            select(
                exists().where(
                    AdoptionRequest.publication_id == publication_id,
                    AdoptionRequest.state == RequestState.APPROVED,
                )
            )
        )
        return Availability.UNAVAILABLE if has_approved else Availability.AVAILABLE

    async def create(
        self,
        db: AsyncSession,
        owner_id: int,
        data: PublicationCreate,
    ) -> PublicationMutationResponse:
        """
        Create a publication (always `available`) together with its pet.

        Raises:
            DatabaseError: Insert failed (e.g. owner row missing)
        """
        try:
            publication = Publication(
                owner_id=owner_id,
                photo=data.photo,
                availability=Availability.AVAILABLE,
            )
            publication.pet = Pet(
                name=data.name,
                species=data.species,
                sex=data.sex,
                size=data.size,
                description=data.description,
            )
            db.add(publication)
            await db.flush()
            logger.info(
                "Publication %s created by user %s (pet=%s)",
                publication.id,
                owner_id,
                data.species.value,
            )
            return PublicationMutationResponse(
                message="Publication created successfully",
                publication=PublicationResponse.model_validate(publication),
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating publication: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not create the publication. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def edit(
        self,
        db: AsyncSession,
        owner_id: int,
        publication_id: int,
        data: PublicationUpdate,
    ) -> PublicationMutationResponse:
        """
        Update the pet fields, and optionally the photo, of an owned publication.

        A supplied availability must equal the derived one; anything else would
        break the approved-request invariant and raises AvailabilityConflictError.
        A publication that somehow lost its pet gets a new one.
        """
        _require_positive_id(publication_id)
        try:
            publication = await self._get_owned(db, owner_id, publication_id, "edit")

            derived = await self.derived_availability(db, publication_id)
            if data.availability is not None and data.availability != derived:
                raise AvailabilityConflictError(
                    publication_id=publication_id,
                    requested=data.availability.value,
                    derived=derived.value,
                )

            if data.photo is not None:
                publication.photo = data.photo
            publication.availability = derived

            if publication.pet is None:
                publication.pet = Pet(
                    name=data.name,
                    species=data.species,
                    sex=data.sex,
                    size=data.size,
                    description=data.description,
                )
            else:
                pet = publication.pet
                pet.name = data.name
                pet.species = data.species
                pet.sex = data.sex
                pet.size = data.size
                pet.description = data.description

            await db.flush()
            logger.info("Publication %s edited by user %s", publication_id, owner_id)
            return PublicationMutationResponse(
                message="Publication updated successfully",
                publication=PublicationResponse.model_validate(publication),
            )
        except PetNetError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "Database error editing publication %s: %s", publication_id, e, exc_info=True
            )
            raise DatabaseError(
                message="Could not update the publication. Please try again.",
                context={"publication_id": publication_id},
            )

    async def delete(
        self,
        db: AsyncSession,
        owner_id: int,
        publication_id: int,
    ) -> MessageResponse:
        """
        Delete an owned publication.

        The pet and every adoption request go with it through ON DELETE
        CASCADE; the relationships use passive_deletes so the ORM leaves
        that to the database.
        """
        _require_positive_id(publication_id)
        try:
            publication = await self._get_owned(db, owner_id, publication_id, "delete")
            await db.delete(publication)
            await db.flush()
            logger.info("Publication %s deleted by user %s", publication_id, owner_id)
            return MessageResponse(message="Publication deleted successfully")
        except PetNetError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "Database error deleting publication %s: %s", publication_id, e, exc_info=True
            )
            raise DatabaseError(
                message="Could not delete the publication. Please try again.",
                context={"publication_id": publication_id},
            )

    async def list_available(
        self,
        db: AsyncSession,
        species: Optional[Species] = None,
    ) -> AvailablePublicationListResponse:
        """
        Marketplace listing: available publications, optionally one species only.

        Query plan:
            SELECT ... FROM publications [JOIN pets]
            WHERE availability = 'available' [AND pets.species = :species]
            → idx_publications_availability
        """
        try:
            query = (
                select(Publication)
                .options(selectinload(Publication.pet))
                .where(Publication.availability == Availability.AVAILABLE)
                .order_by(Publication.id)
            )
            if species is not None:
                query = query.join(Publication.pet).where(Pet.species == species)

            result = await db.execute(query)
            publications = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing publications: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve publications. Please try again.",
                context={"error_type": type(e).__name__},
            )

        if not publications:
            return AvailablePublicationListResponse(
                publications=[], message=NO_PUBLICATIONS_MESSAGE
            )
        return AvailablePublicationListResponse(
            publications=[AvailablePublicationItem.model_validate(p) for p in publications]
        )

    async def list_mine(self, db: AsyncSession, owner_id: int) -> PublicationListResponse:
        try:
            result = await db.execute(
                select(Publication)
                .options(selectinload(Publication.pet))
                .where(Publication.owner_id == owner_id)
                .order_by(Publication.id)
            )
            publications = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing user %s publications: %s", owner_id, e)
            raise DatabaseError(
                message="Could not retrieve your publications. Please try again.",
                context={"owner_id": owner_id},
            )
        return PublicationListResponse(
            publications=[PublicationResponse.model_validate(p) for p in publications]
        )

    async def get_detail(
        self, db: AsyncSession, publication_id: int
    ) -> PublicationDetailResponse:
        """Publication with pet and the owner's contact details."""
        _require_positive_id(publication_id)
        try:
            result = await db.execute(
                select(Publication)
                .options(selectinload(Publication.pet), selectinload(Publication.owner))
                .where(Publication.id == publication_id)
            )
            publication = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching publication %s: %s", publication_id, e)
            raise DatabaseError(
                message="Could not retrieve the publication. Please try again.",
                context={"publication_id": publication_id},
            )

        if publication is None:
            raise NotFoundError(resource="publication", resource_id=publication_id)
        return PublicationDetailResponse.model_validate(publication)


# ── Singleton Instance ────────────────────────────────────────────────────
publication_service = PublicationService()
