"""
PetNet Backend: Adoption Request Service Tests
================================================

What:  Submit, cancel, status changes and listings against a real SQLite database.

What we test:
    ✅ Ordered precondition checks (first failure wins) for every operation
    ✅ Approval closes the publication and rejects pending siblings only
    ✅ Approved requests are immutable; unchanged state is a no-op
    ✅ Notification outcome: sent / failed / skipped, never rolls back
    ✅ Stale concurrent approvals cannot both commit
"""

import pytest
from sqlalchemy import update

from app.exceptions import (
    ApprovedRequestImmutableError,
    DuplicateRequestError,
    ForbiddenError,
    NotFoundError,
    NotificationError,
    PublicationUnavailableError,
    RequestNotPendingError,
    SelfRequestError,
    ValidationError,
)
from app.models import AdoptionRequest, Availability, Publication, RequestState
from app.services.adoption_request_service import (
    NO_RECEIVED_MESSAGE,
    NO_SENT_MESSAGE,
    UNNAMED_PET,
    AdoptionRequestService,
    parse_positive_int,
)


@pytest.fixture
def service(notifier):
    return AdoptionRequestService(notifier=notifier)


class TestParsePositiveInt:
    @pytest.mark.parametrize("value,expected", [
        (7, 7),
        ("12", 12),
        (" 3 ", 3),
        (0, None),
        (-4, None),
        ("0", None),
        ("abc", None),
        ("1.5", None),
        (2.0, None),
        (True, None),
        (None, None),
        (2**63 - 1, 2**63 - 1),
        (2**63, None),
        ("99999999999999999999", None),
    ])
    def test_parse(self, value, expected):
        assert parse_positive_int(value) == expected


class TestSubmit:

    @pytest.mark.asyncio
    async def test_creates_pending_request(self, service, db_session, make_user, make_publication, fetch):
        owner = await make_user("Olga")
        requester = await make_user("Raul")
        publication = await make_publication(owner)

        result = await service.submit(db_session, requester.id, str(publication.id), "  I love dogs  ")
        await db_session.commit()

        assert result.request.state == RequestState.PENDING
        assert result.request.message == "I love dogs"
        stored = await fetch(AdoptionRequest, result.request.id)
        assert stored.requester_id == requester.id
        assert stored.publication_id == publication.id

    @pytest.mark.asyncio
    async def test_missing_fields_listed_together(self, service, db_session, make_user):
        requester = await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await service.submit(db_session, requester.id, None, "   ")

        fields = [e["field"] for e in exc_info.value.errors]
        assert fields == ["publicationId", "message"]

    @pytest.mark.asyncio
    async def test_validation_runs_before_lookup(self, service, db_session, make_user):
        requester = await make_user()
        # Publication 999 does not exist, but the message is missing: validation wins.
        with pytest.raises(ValidationError):
            await service.submit(db_session, requester.id, 999, "")

    @pytest.mark.asyncio
    async def test_unknown_publication(self, service, db_session, make_user):
        requester = await make_user()
        with pytest.raises(NotFoundError):
            await service.submit(db_session, requester.id, 999, "Hello")

    @pytest.mark.asyncio
    async def test_unavailable_publication(self, service, db_session, make_user, make_publication):
        """Scenario B: no requests on a closed publication."""
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner, availability=Availability.UNAVAILABLE)

        with pytest.raises(PublicationUnavailableError) as exc_info:
            await service.submit(db_session, requester.id, publication.id, "Hello")
        assert "not available" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unavailable_checked_before_self_request(
        self, service, db_session, make_user, make_publication
    ):
        owner = await make_user()
        publication = await make_publication(owner, availability=Availability.UNAVAILABLE)

        with pytest.raises(PublicationUnavailableError):
            await service.submit(db_session, owner.id, publication.id, "Mine")

    @pytest.mark.asyncio
    async def test_owner_cannot_request_own_publication(
        self, service, db_session, make_user, make_publication
    ):
        owner = await make_user()
        publication = await make_publication(owner)

        with pytest.raises(SelfRequestError):
            await service.submit(db_session, owner.id, publication.id, "Mine")

    @pytest.mark.asyncio
    async def test_second_request_is_duplicate(
        self, service, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        await make_request(requester, publication, state=RequestState.REJECTED)

        with pytest.raises(DuplicateRequestError):
            await service.submit(db_session, requester.id, publication.id, "Again")

    @pytest.mark.asyncio
    async def test_integrity_race_reported_as_duplicate(
        self, service, db_session, session_factory, make_user, make_publication, monkeypatch
    ):
        """A concurrent insert that slips past the pre-check hits the unique constraint."""
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        requester_id, publication_id = requester.id, publication.id

        async with session_factory() as other:
            other.add(AdoptionRequest(
                requester_id=requester_id,
                publication_id=publication_id,
                message="first",
                state=RequestState.PENDING,
            ))
            await other.commit()

        lookups = {"n": 0}
        original = AdoptionRequestService._find_existing

        async def blind_first_lookup(db, rid, pid):
            lookups["n"] += 1
            if lookups["n"] == 1:
                return None
            return await original(db, rid, pid)

        monkeypatch.setattr(AdoptionRequestService, "_find_existing", staticmethod(blind_first_lookup))

        with pytest.raises(DuplicateRequestError):
            await service.submit(db_session, requester_id, publication_id, "second")


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_pending_then_not_found(
        self, service, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)
        request_id = request.id

        result = await service.cancel(db_session, requester.id, request_id)
        await db_session.commit()

        assert "cancelled" in result.message
        assert await fetch(AdoptionRequest, request_id) is None
        assert await fetch(Publication, publication.id) is not None

        with pytest.raises(NotFoundError):
            await service.cancel(db_session, requester.id, request_id)

    @pytest.mark.asyncio
    async def test_invalid_id(self, service, db_session):
        with pytest.raises(ValidationError):
            await service.cancel(db_session, 1, 0)

    @pytest.mark.asyncio
    async def test_only_requester_may_cancel(
        self, service, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)

        with pytest.raises(ForbiddenError):
            await service.cancel(db_session, owner.id, request.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [RequestState.APPROVED, RequestState.REJECTED])
    async def test_only_pending_can_be_cancelled(
        self, state, service, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication, state=state)

        with pytest.raises(RequestNotPendingError) as exc_info:
            await service.cancel(db_session, requester.id, request.id)
        assert exc_info.value.message == "Only pending requests can be cancelled"


class TestChangeStatusChecks:

    @pytest.mark.asyncio
    async def test_invalid_request_id_checked_first(self, service, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await service.change_status(db_session, 1, -1, "bogus")
        assert exc_info.value.field == "id"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["bogus", None, "APPROVED", ""])
    async def test_invalid_state(self, target, service, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await service.change_status(db_session, 1, 1, target)
        assert exc_info.value.message == "Invalid state"

    @pytest.mark.asyncio
    async def test_unknown_request(self, service, db_session):
        with pytest.raises(NotFoundError):
            await service.change_status(db_session, 1, 12345, "approved")

    @pytest.mark.asyncio
    async def test_only_owner_may_decide(
        self, service, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)

        with pytest.raises(ForbiddenError):
            await service.change_status(db_session, requester.id, request.id, "approved")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["pending", "rejected", "approved"])
    async def test_approved_is_immutable(
        self, target, service, notifier, db_session, make_user, make_publication, make_request, fetch
    ):
        """Scenario C, including re-approving an approved request."""
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner, availability=Availability.UNAVAILABLE)
        request = await make_request(requester, publication, state=RequestState.APPROVED)

        with pytest.raises(ApprovedRequestImmutableError) as exc_info:
            await service.change_status(db_session, owner.id, request.id, target)

        assert exc_info.value.message == "Cannot modify an approved request"
        assert (await fetch(AdoptionRequest, request.id)).state == RequestState.APPROVED
        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_same_state_is_noop(
        self, service, notifier, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication, state=RequestState.REJECTED)

        result = await service.change_status(db_session, owner.id, request.id, "rejected")

        assert result.changed is False
        assert result.request.state == RequestState.REJECTED
        assert result.notification.status == "skipped"
        assert notifier.calls == []


class TestApproval:

    @pytest.mark.asyncio
    async def test_scenario_a_approve_rejects_pending_siblings(
        self, service, notifier, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user("Olga")
        user_a = await make_user("Alice", email="alice@example.com")
        user_b = await make_user("Bruno", email="bruno@example.com")
        publication = await make_publication(owner, name="Toby")
        r1 = await make_request(user_a, publication)
        r2 = await make_request(user_b, publication)

        result = await service.change_status(db_session, owner.id, r1.id, "approved")

        assert result.changed is True
        assert result.request.state == RequestState.APPROVED
        assert result.notification.status == "sent"
        assert (await fetch(AdoptionRequest, r1.id)).state == RequestState.APPROVED
        assert (await fetch(AdoptionRequest, r2.id)).state == RequestState.REJECTED
        assert (await fetch(Publication, publication.id)).availability == Availability.UNAVAILABLE

        assert notifier.calls == [{
            "recipient_email": "alice@example.com",
            "recipient_name": "Alice",
            "pet_name": "Toby",
            "new_state": RequestState.APPROVED,
        }]

    @pytest.mark.asyncio
    async def test_rejected_request_can_be_approved(
        self, service, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication, state=RequestState.REJECTED)

        result = await service.change_status(db_session, owner.id, request.id, "approved")

        assert result.request.state == RequestState.APPROVED
        assert (await fetch(Publication, publication.id)).availability == Availability.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_other_publications_untouched(
        self, service, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user()
        requester = await make_user()
        other = await make_user()
        publication = await make_publication(owner)
        elsewhere = await make_publication(owner, name="Michi")
        request = await make_request(requester, publication)
        unrelated = await make_request(other, elsewhere)

        await service.change_status(db_session, owner.id, request.id, "approved")

        assert (await fetch(AdoptionRequest, unrelated.id)).state == RequestState.PENDING
        assert (await fetch(Publication, elsewhere.id)).availability == Availability.AVAILABLE

    @pytest.mark.asyncio
    async def test_scenario_e_second_approval_conflicts(
        self, service, notifier, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user()
        user_a = await make_user()
        user_b = await make_user()
        publication = await make_publication(owner)
        r1 = await make_request(user_a, publication)
        r2 = await make_request(user_b, publication)
        r1_id, r2_id, pub_id = r1.id, r2.id, publication.id

        await service.change_status(db_session, owner.id, r1_id, "approved")

        with pytest.raises(PublicationUnavailableError):
            await service.change_status(db_session, owner.id, r2_id, "approved")

        assert (await fetch(AdoptionRequest, r1_id)).state == RequestState.APPROVED
        assert (await fetch(AdoptionRequest, r2_id)).state == RequestState.REJECTED
        assert (await fetch(Publication, pub_id)).availability == Availability.UNAVAILABLE
        assert len(notifier.calls) == 1

    @pytest.mark.asyncio
    async def test_state_is_reread_not_taken_from_session_cache(
        self, service, db_session, session_factory, make_user, make_publication, make_request, fetch
    ):
        """db_session still holds the request as pending after another session rejected it."""
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)
        owner_id, request_id = owner.id, request.id

        async with session_factory() as other:
            await other.execute(
                update(AdoptionRequest)
                .where(AdoptionRequest.id == request_id)
                .values(state=RequestState.REJECTED)
            )
            await other.commit()

        result = await service.change_status(db_session, owner_id, request_id, "pending")

        assert result.changed is True
        assert (await fetch(AdoptionRequest, request_id)).state == RequestState.PENDING

    @pytest.mark.asyncio
    async def test_stale_reader_cannot_double_approve(
        self, notifier, db_session, session_factory, make_user, make_publication, make_request, fetch
    ):
        """
        Two owners' tabs: tab 1 has R2 loaded as pending when tab 2 approves R1.
        Tab 1's approval must lose on the publication compare-and-set.
        """
        owner = await make_user()
        user_a = await make_user()
        user_b = await make_user()
        publication = await make_publication(owner)
        r1 = await make_request(user_a, publication)
        r2 = await make_request(user_b, publication)
        owner_id, r1_id, r2_id = owner.id, r1.id, r2.id

        # db_session still believes r2 is pending and the publication available.
        async with session_factory() as tab_two:
            await AdoptionRequestService(notifier).change_status(tab_two, owner_id, r1_id, "approved")

        with pytest.raises(PublicationUnavailableError):
            await AdoptionRequestService(notifier).change_status(
                db_session, owner_id, r2_id, "approved"
            )

        assert (await fetch(AdoptionRequest, r1_id)).state == RequestState.APPROVED
        assert (await fetch(AdoptionRequest, r2_id)).state == RequestState.REJECTED


class TestTransitions:

    @pytest.mark.asyncio
    async def test_reject_does_not_touch_publication(
        self, service, notifier, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user()
        requester = await make_user()
        other = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)
        sibling = await make_request(other, publication)

        result = await service.change_status(db_session, owner.id, request.id, "rejected")

        assert result.changed is True
        assert result.request.state == RequestState.REJECTED
        assert (await fetch(AdoptionRequest, sibling.id)).state == RequestState.PENDING
        assert (await fetch(Publication, publication.id)).availability == Availability.AVAILABLE
        assert notifier.calls[0]["new_state"] == RequestState.REJECTED

    @pytest.mark.asyncio
    async def test_rejected_back_to_pending(
        self, service, db_session, make_user, make_publication, make_request, fetch
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication, state=RequestState.REJECTED)

        await service.change_status(db_session, owner.id, request.id, "pending")

        assert (await fetch(AdoptionRequest, request.id)).state == RequestState.PENDING


class TestNotificationOutcome:

    @pytest.mark.asyncio
    async def test_failure_keeps_committed_change(
        self, recording_notifier, db_session, make_user, make_publication, make_request, fetch
    ):
        failing = recording_notifier(error=NotificationError())
        service = AdoptionRequestService(notifier=failing)
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)

        result = await service.change_status(db_session, owner.id, request.id, "approved")

        assert result.changed is True
        assert result.notification.status == "failed"
        assert len(failing.calls) == 1
        assert (await fetch(AdoptionRequest, request.id)).state == RequestState.APPROVED
        assert (await fetch(Publication, publication.id)).availability == Availability.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_disabled_sink_is_skipped(
        self, recording_notifier, db_session, make_user, make_publication, make_request
    ):
        disabled = recording_notifier(enabled=False)
        service = AdoptionRequestService(notifier=disabled)
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner)
        request = await make_request(requester, publication)

        result = await service.change_status(db_session, owner.id, request.id, "rejected")

        assert result.changed is True
        assert result.notification.status == "skipped"
        assert disabled.calls == []

    @pytest.mark.asyncio
    async def test_missing_pet_named_unnamed(
        self, service, notifier, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        publication = await make_publication(owner, with_pet=False)
        request = await make_request(requester, publication)

        await service.change_status(db_session, owner.id, request.id, "rejected")

        assert notifier.calls[0]["pet_name"] == UNNAMED_PET


class TestListings:

    @pytest.mark.asyncio
    async def test_received_empty(self, service, db_session, make_user):
        owner = await make_user()
        result = await service.list_received(db_session, owner.id)
        assert result.requests == []
        assert result.message == NO_RECEIVED_MESSAGE

    @pytest.mark.asyncio
    async def test_received_only_own_publications(
        self, service, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user("Olga")
        other_owner = await make_user("Otto")
        requester = await make_user("Raul", last_name="Gomez")
        mine = await make_publication(owner, name="Toby")
        theirs = await make_publication(other_owner, name="Michi")
        await make_request(requester, mine, message="Please")
        await make_request(requester, theirs)

        result = await service.list_received(db_session, owner.id)

        assert result.message is None
        assert len(result.requests) == 1
        item = result.requests[0]
        assert item.pet_name == "Toby"
        assert item.message == "Please"
        assert item.requester.first_name == "Raul"
        assert item.requester.last_name == "Gomez"
        assert item.publication_id == mine.id

    @pytest.mark.asyncio
    async def test_sent_actions(
        self, service, db_session, make_user, make_publication, make_request
    ):
        owner = await make_user()
        requester = await make_user()
        open_pub = await make_publication(owner, name="Toby")
        closed_pub = await make_publication(owner, name="Michi")
        pending = await make_request(requester, open_pub)
        rejected = await make_request(requester, closed_pub, state=RequestState.REJECTED)

        result = await service.list_sent(db_session, requester.id)

        by_id = {item.id: item for item in result.requests}
        assert by_id[pending.id].actions.cancel == f"/api/requests/{pending.id}"
        assert by_id[pending.id].actions.detail == f"/api/publications/{open_pub.id}"
        assert by_id[rejected.id].actions.cancel is None
        assert by_id[rejected.id].pet_name == "Michi"

    @pytest.mark.asyncio
    async def test_sent_empty(self, service, db_session, make_user):
        requester = await make_user()
        result = await service.list_sent(db_session, requester.id)
        assert result.requests == []
        assert result.message == NO_SENT_MESSAGE
