"""
PetNet Backend: Adoption Request Service (Request Lifecycle)
==============================================================

What:  Submit, cancel and decide adoption requests; list them for both sides.
How:   Every operation runs its precondition checks in a fixed order (first
       failure wins) before touching the database. Approval is a single
       transaction of compare-and-set UPDATEs so two owners' clicks, or two
       tabs, can never approve twice.
Who:   Called by the /api/requests router. Holds the NotificationSink used to
       email the requester after a status change commits.

Approval Flow (PATCH /api/requests/{id}/status, targetState=approved):
    ┌───────────────┐   ┌────────────────────┐   ┌──────────────────┐
    │ Load request  │──▶│ Ordered checks     │──▶│ BEGIN            │
    │ FOR UPDATE    │   │ owner / immutable  │   │ publication CAS  │
    └───────────────┘   │ / idempotent       │   │ request CAS      │
                        └────────────────────┘   │ reject siblings  │
                                                 │ COMMIT           │
                                                 └────────┬─────────┘
                                                          ▼
                                                 ┌──────────────────┐
                                                 │ Notify requester │
                                                 │ (never rolls     │
                                                 │  back)           │
                                                 └──────────────────┘

    publication CAS:  UPDATE publications SET availability='unavailable'
                      WHERE id=:pid AND availability='available'
    request CAS:      UPDATE adoption_requests SET state='approved'
                      WHERE id=:rid AND state=:observed
    Zero rows on either update aborts the whole transaction with a conflict.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import (
    ApprovedRequestImmutableError,
    ConcurrentModificationError,
    DatabaseError,
    DuplicateRequestError,
    ForbiddenError,
    NotFoundError,
    PetNetError,
    PublicationUnavailableError,
    RequestNotPendingError,
    SelfRequestError,
    ValidationError,
)
from app.models.adoption_request import AdoptionRequest, RequestState
from app.models.publication import Availability, Publication
from app.schemas.adoption_request import (
    AdoptionRequestResponse,
    NotificationOutcome,
    ReceivedRequestItem,
    ReceivedRequestListResponse,
    RequesterSummary,
    SentRequestActions,
    SentRequestItem,
    SentRequestListResponse,
    StatusChangeResponse,
    SubmitRequestResponse,
)
from app.schemas.common import MAX_ID, MessageResponse
from app.services.email_service import email_service
from app.services.notification_base import NotificationSink

logger = logging.getLogger(__name__)

UNNAMED_PET = "Unnamed"
NO_RECEIVED_MESSAGE = "There are no requests for your publications."
NO_SENT_MESSAGE = "You have not sent any adoption requests."

# Keep bulk UPDATEs and the objects already in the session in agreement.
_SYNC = {"synchronize_session": "evaluate"}


def parse_positive_int(value: Any) -> Optional[int]:
    """Accept 12 or "12"; anything else (bools, floats, "abc", 0, -3, > MAX_ID) is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdecimal():
        number = int(value.strip())
    else:
        return None
    return number if 0 < number <= MAX_ID else None


def _require_request_id(request_id: Any) -> int:
    parsed = parse_positive_int(request_id)
    if parsed is None:
        raise ValidationError(message="Invalid request ID", field="id")
    return parsed


def _pet_name(publication: Publication) -> str:
    return publication.pet.name if publication.pet is not None else UNNAMED_PET


class AdoptionRequestService:
    """
    Business logic for adoption requests.

    The notification sink is injected so tests (and alternative channels)
    can replace SMTP without touching the lifecycle.
    """

    def __init__(self, notifier: NotificationSink):
        self.notifier = notifier

    # ══════════════════════════════════════════════════════════════════════
    # Requester side
    # ══════════════════════════════════════════════════════════════════════

    async def submit(
        self,
        db: AsyncSession,
        requester_id: int,
        publication_id: Any,
        message: Optional[str],
    ) -> SubmitRequestResponse:
        """
        Create a pending request from `requester_id` for a publication.

        Checked in order, first failure wins:
            1. publicationId is a positive integer and message is non-blank
            2. publication exists
            3. publication is available
            4. requester is not the owner
            5. no earlier request from this requester for this publication

        Raises:
            ValidationError, NotFoundError, PublicationUnavailableError,
            SelfRequestError, DuplicateRequestError, DatabaseError
        """
        errors = []
        parsed_id = parse_positive_int(publication_id)
        if parsed_id is None:
            errors.append(
                {"field": "publicationId", "message": "publicationId must be a positive integer"}
            )
        text = message.strip() if isinstance(message, str) else ""
        if not text:
            errors.append({"field": "message", "message": "message is required"})
        if errors:
            raise ValidationError(
                message="publicationId and message are required",
                errors=errors,
            )

        publication = await db.get(Publication, parsed_id)
        if publication is None:
            raise NotFoundError(resource="publication", resource_id=parsed_id)
        if publication.availability != Availability.AVAILABLE:
            raise PublicationUnavailableError(parsed_id)
        if publication.owner_id == requester_id:
            raise SelfRequestError(parsed_id)
        if await self._find_existing(db, requester_id, parsed_id) is not None:
            raise DuplicateRequestError(parsed_id)

        request = AdoptionRequest(
            message=text,
            state=RequestState.PENDING,
            requester_id=requester_id,
            publication_id=parsed_id,
        )
        db.add(request)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent submit, or the requester row is gone.
            await db.rollback()
            if await self._find_existing(db, requester_id, parsed_id) is not None:
                logger.info(
                    "Concurrent duplicate request by user %s for publication %s",
                    requester_id,
                    parsed_id,
                )
                raise DuplicateRequestError(parsed_id)
            logger.error("Integrity error creating request: %s", e)
            raise DatabaseError(
                message="Could not send the request. Please try again.",
                context={"publication_id": parsed_id},
            )

        logger.info(
            "Request %s created: user %s -> publication %s",
            request.id,
            requester_id,
            parsed_id,
        )
        return SubmitRequestResponse(
            message="Request sent successfully",
            request=AdoptionRequestResponse.model_validate(request),
        )

    async def cancel(
        self,
        db: AsyncSession,
        requester_id: int,
        request_id: Any,
    ) -> MessageResponse:
        """
        Withdraw one's own pending request (hard delete, no notification).

        A second cancel of the same request finds nothing: NotFoundError.
        """
        parsed_id = _require_request_id(request_id)

        request = await db.get(AdoptionRequest, parsed_id)
        if request is None:
            raise NotFoundError(resource="request", resource_id=parsed_id)
        if request.requester_id != requester_id:
            raise ForbiddenError(
                message="You are not allowed to cancel this request",
                context={"request_id": parsed_id},
            )
        if request.state != RequestState.PENDING:
            raise RequestNotPendingError(parsed_id, request.state.value)

        try:
            await db.delete(request)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error cancelling request %s: %s", parsed_id, e)
            raise DatabaseError(
                message="Could not cancel the request. Please try again.",
                context={"request_id": parsed_id},
            )

        logger.info("Request %s cancelled by user %s", parsed_id, requester_id)
        return MessageResponse(message="Request cancelled successfully")

    async def list_sent(self, db: AsyncSession, requester_id: int) -> SentRequestListResponse:
        try:
            result = await db.execute(
                select(AdoptionRequest)
                .options(selectinload(AdoptionRequest.publication).selectinload(Publication.pet))
                .where(AdoptionRequest.requester_id == requester_id)
                .order_by(AdoptionRequest.id)
            )
            requests = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing requests sent by %s: %s", requester_id, e)
            raise DatabaseError(
                message="Could not retrieve your requests. Please try again.",
                context={"requester_id": requester_id},
            )

        if not requests:
            return SentRequestListResponse(requests=[], message=NO_SENT_MESSAGE)

        return SentRequestListResponse(
            requests=[
                SentRequestItem(
                    id=r.id,
                    pet_name=_pet_name(r.publication),
                    state=r.state,
                    message=r.message,
                    publication_id=r.publication_id,
                    actions=SentRequestActions(
                        cancel=(
                            f"/api/requests/{r.id}"
                            if r.state == RequestState.PENDING
                            else None
                        ),
                        detail=f"/api/publications/{r.publication_id}",
                    ),
                )
                for r in requests
            ]
        )

    # ══════════════════════════════════════════════════════════════════════
    # Owner side
    # ══════════════════════════════════════════════════════════════════════

    async def list_received(
        self, db: AsyncSession, owner_id: int
    ) -> ReceivedRequestListResponse:
        """Requests on every publication owned by `owner_id`."""
        try:
            result = await db.execute(
                select(AdoptionRequest)
                .join(AdoptionRequest.publication)
                .options(
                    selectinload(AdoptionRequest.requester),
                    selectinload(AdoptionRequest.publication).selectinload(Publication.pet),
                )
                .where(Publication.owner_id == owner_id)
                .order_by(AdoptionRequest.id)
            )
            requests = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing requests received by %s: %s", owner_id, e)
            raise DatabaseError(
                message="Could not retrieve received requests. Please try again.",
                context={"owner_id": owner_id},
            )

        if not requests:
            return ReceivedRequestListResponse(requests=[], message=NO_RECEIVED_MESSAGE)

        return ReceivedRequestListResponse(
            requests=[
                ReceivedRequestItem(
                    id=r.id,
                    requester=RequesterSummary.model_validate(r.requester),
                    pet_name=_pet_name(r.publication),
                    state=r.state,
                    message=r.message,
                    publication_id=r.publication_id,
                )
                for r in requests
            ]
        )

    async def change_status(
        self,
        db: AsyncSession,
        owner_id: int,
        request_id: Any,
        target_state: Any,
    ) -> StatusChangeResponse:
        """
        Move a request to `target_state` on behalf of the publication owner.

        Checked in order, first failure wins:
            1. request id is a positive integer           → ValidationError
            2. target state is pending/approved/rejected  → ValidationError
            3. request exists                             → NotFoundError
            4. caller owns the publication                → ForbiddenError
            5. request is not approved                    → ApprovedRequestImmutableError
            6. request already in target state            → success, changed=False

        Approval closes the publication and rejects every other pending
        request on it, all in one transaction. The requester is emailed
        after commit; auto-rejected siblings are not.

        Raises:
            PublicationUnavailableError: Another request was approved first
            ConcurrentModificationError: The request changed since it was read
            DatabaseError: Unexpected persistence failure (rolled back)
        """
        parsed_id = _require_request_id(request_id)
        target = self._parse_state(target_state)

        request = await self._load_for_update(db, parsed_id)
        if request is None:
            raise NotFoundError(resource="request", resource_id=parsed_id)
        if request.publication.owner_id != owner_id:
            raise ForbiddenError(
                message="You are not allowed to modify this request",
                context={"request_id": parsed_id},
            )
        if request.state == RequestState.APPROVED:
            raise ApprovedRequestImmutableError(parsed_id)

        if request.state == target:
            logger.info("Request %s already %s; nothing to do", parsed_id, target.value)
            return StatusChangeResponse(
                message="The request already had that state. No email was sent.",
                changed=False,
                request=AdoptionRequestResponse.model_validate(request),
                notification=NotificationOutcome(
                    status="skipped", message="State unchanged; requester not notified"
                ),
            )

        observed = request.state
        try:
            if target == RequestState.APPROVED:
                rejected = await self._approve(db, request, observed)
                logger.info(
                    "Request %s approved; publication %s closed, %d sibling(s) rejected",
                    parsed_id,
                    request.publication_id,
                    rejected,
                )
            else:
                await self._transition(db, request, observed, target)
                logger.info(
                    "Request %s moved %s -> %s", parsed_id, observed.value, target.value
                )
            await db.commit()
        except PetNetError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "Database error changing request %s status: %s", parsed_id, e, exc_info=True
            )
            raise DatabaseError(
                message="Could not update the request. Please try again.",
                context={"request_id": parsed_id},
            )

        notification = await self._notify_requester(request, target)
        return StatusChangeResponse(
            message=f"Request updated to {target.value}. {notification.message}",
            changed=True,
            request=AdoptionRequestResponse.model_validate(request),
            notification=notification,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    def _parse_state(target_state: Any) -> RequestState:
        try:
            return RequestState(target_state)
        except ValueError:
            raise ValidationError(message="Invalid state", field="targetState")

    @staticmethod
    async def _find_existing(
        db: AsyncSession, requester_id: int, publication_id: int
    ) -> Optional[int]:
        return await db.scalar(
            select(AdoptionRequest.id).where(
                AdoptionRequest.requester_id == requester_id,
                AdoptionRequest.publication_id == publication_id,
            )
        )

    @staticmethod
    async def _load_for_update(db: AsyncSession, request_id: int) -> Optional[AdoptionRequest]:
        # FOR UPDATE is rendered on PostgreSQL; SQLite serializes writers anyway.
        result = await db.execute(
            select(AdoptionRequest)
            .options(
                selectinload(AdoptionRequest.requester),
                selectinload(AdoptionRequest.publication).selectinload(Publication.pet),
            )
            .where(AdoptionRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _approve(
        db: AsyncSession, request: AdoptionRequest, observed: RequestState
    ) -> int:
        """Close the publication, approve the request, reject pending siblings."""
        closed = await db.execute(
            update(Publication)
            .where(
                Publication.id == request.publication_id,
                Publication.availability == Availability.AVAILABLE,
            )
            .values(availability=Availability.UNAVAILABLE)
            .execution_options(**_SYNC)
        )
        if closed.rowcount != 1:
            raise PublicationUnavailableError(request.publication_id)

        approved = await db.execute(
            update(AdoptionRequest)
            .where(AdoptionRequest.id == request.id, AdoptionRequest.state == observed)
            .values(state=RequestState.APPROVED)
            .execution_options(**_SYNC)
        )
        if approved.rowcount != 1:
            raise ConcurrentModificationError(request.id)

        siblings = await db.execute(
            update(AdoptionRequest)
            .where(
                AdoptionRequest.publication_id == request.publication_id,
                AdoptionRequest.id != request.id,
                AdoptionRequest.state == RequestState.PENDING,
            )
            .values(state=RequestState.REJECTED)
            .execution_options(**_SYNC)
        )
        return siblings.rowcount

    @staticmethod
    async def _transition(
        db: AsyncSession,
        request: AdoptionRequest,
        observed: RequestState,
        target: RequestState,
    ) -> None:
        result = await db.execute(
            update(AdoptionRequest)
            .where(AdoptionRequest.id == request.id, AdoptionRequest.state == observed)
            .values(state=target)
            .execution_options(**_SYNC)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(request.id)

    async def _notify_requester(
        self, request: AdoptionRequest, new_state: RequestState
    ) -> NotificationOutcome:
        """Best-effort email; the committed state change stands whatever happens here."""
        if not self.notifier.enabled:
            logger.info("Email delivery disabled; request %s requester not notified", request.id)
            return NotificationOutcome(
                status="skipped", message="Email delivery is disabled; requester not notified."
            )

        requester = request.requester
        try:
            await self.notifier.notify(
                recipient_email=requester.email,
                recipient_name=requester.first_name,
                pet_name=_pet_name(request.publication),
                new_state=new_state,
            )
        except Exception as e:
            logger.error(
                "Notification for request %s failed: %s", request.id, e, exc_info=True
            )
            return NotificationOutcome(
                status="failed", message="The requester could not be notified by email."
            )
        return NotificationOutcome(status="sent", message="The requester was notified by email.")


# ── Singleton Instance ────────────────────────────────────────────────────
adoption_request_service = AdoptionRequestService(notifier=email_service)
