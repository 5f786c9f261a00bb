"""
PetNet Backend: Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets its own SQLite file in tmp_path (foreign keys on, so
       cascades behave as in production), a session on it, factories for
       users/publications/requests, and an httpx AsyncClient bound to the app
       with the session dependency pointed at the test database.

Fixture Hierarchy (all function-scoped):
    engine ─┬─ session_factory ─┬─ db_session ── factories (make_user, ...)
            │                   └─ fetch        (reads through a fresh session)
            └─ test_client      (app + dependency override + recording notifier)
"""

import os

# Must happen before `app` is imported: settings are read at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./petnet_test.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.database import build_engine, build_session_factory, get_db_session, init_models
from app.models import (
    AdoptionRequest,
    Availability,
    Pet,
    Publication,
    RequestState,
    Sex,
    Size,
    Species,
    User,
)
from app.services.notification_base import NotificationSink

TEST_JWT_SECRET = "test-secret"

# 1x1 transparent PNG.
SAMPLE_PHOTO = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class RecordingNotifier(NotificationSink):
    """Notification sink that remembers every call and can be told to fail."""

    def __init__(self, enabled: bool = True, error: Optional[Exception] = None):
        self._enabled = enabled
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def notify(self, recipient_email, recipient_name, pet_name, new_state) -> None:
        self.calls.append({
            "recipient_email": recipient_email,
            "recipient_name": recipient_name,
            "pet_name": pet_name,
            "new_state": new_state,
        })
        if self.error is not None:
            raise self.error


def make_token(user_id: Any, secret: str = TEST_JWT_SECRET, **claims) -> str:
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: Any) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def pet_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "name": "Luna",
        "species": "dog",
        "sex": "female",
        "size": "medium",
        "description": "Friendly and vaccinated",
        "photo": SAMPLE_PHOTO,
    }
    payload.update(overrides)
    return payload


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'petnet.db'}")
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fetch(session_factory):
    """
    Read a row through a brand-new session.

    Assertions must not trust the test session's identity map, which keeps
    whatever it saw last.
    """
    async def _fetch(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)

    return _fetch


# ══════════════════════════════════════════════════════════════════════════
# Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    async def _make_user(first_name: str = "Ana", **fields) -> User:
        counter["n"] += 1
        user = User(
            email=fields.pop("email", f"user{counter['n']}@example.com"),
            password_hash="not-a-real-hash",
            first_name=first_name,
            last_name=fields.pop("last_name", "Perez"),
            phone=fields.pop("phone", "+54 11 5555-0000"),
            province=fields.pop("province", "Buenos Aires"),
            locality=fields.pop("locality", "La Plata"),
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_publication(db_session):
    async def _make_publication(
        owner: User,
        name: str = "Luna",
        species: Species = Species.DOG,
        availability: Availability = Availability.AVAILABLE,
        with_pet: bool = True,
    ) -> Publication:
        publication = Publication(
            owner_id=owner.id,
            photo=SAMPLE_PHOTO,
            availability=availability,
        )
        if with_pet:
            publication.pet = Pet(
                name=name,
                species=species,
                sex=Sex.FEMALE,
                size=Size.MEDIUM,
                description="Playful and house-trained",
            )
        db_session.add(publication)
        await db_session.commit()
        return publication

    return _make_publication


@pytest.fixture
def make_request(db_session):
    async def _make_request(
        requester: User,
        publication: Publication,
        state: RequestState = RequestState.PENDING,
        message: str = "I have a big garden",
    ) -> AdoptionRequest:
        request = AdoptionRequest(
            requester_id=requester.id,
            publication_id=publication.id,
            state=state,
            message=message,
        )
        db_session.add(request)
        await db_session.commit()
        return request

    return _make_request


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def test_client(engine, session_factory, notifier, monkeypatch):
    """
    AsyncClient talking to the FastAPI app through ASGITransport.

    Request handlers get sessions on the per-test database and the adoption
    request service emails into `notifier`.
    """
    from app import database
    from app.main import app
    from app.services.adoption_request_service import adoption_request_service

    async def _override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(adoption_request_service, "notifier", notifier)
    app.dependency_overrides[get_db_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """auth(user_id) -> Authorization header dict."""
    return auth_headers


@pytest.fixture
def pet_data():
    """pet_data(**overrides) -> publication request body."""
    return pet_payload


@pytest.fixture
def recording_notifier():
    """Factory for notifiers configured per test (disabled, failing, ...)."""
    return RecordingNotifier
