"""Test configuration and fixtures."""

import os

# Settings are read at import time, so point them at SQLite first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "staging")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from conexus.core.database import Base, get_db  # noqa: E402
from conexus.core.dependencies import get_current_operator  # noqa: E402
from conexus.models import *  # noqa: E402,F403 - Import all models
from conexus.schemas.accommodation import CreatePlaceRequest, CreateRoomRequest  # noqa: E402
from conexus.schemas.event import CreateEventRequest  # noqa: E402
from conexus.schemas.registration import SubmitRegistrationRequest  # noqa: E402
from conexus.services.accommodation_service import AccommodationService  # noqa: E402
from conexus.services.dispatch_service import (  # noqa: E402
    DispatchRegistry,
    get_dispatch_registry,
    get_notification_sender,
)
from conexus.services.event_service import EventService  # noqa: E402
from conexus.services.registration_service import RegistrationService  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingSender:
    """Notification sender that records targets and fails for chosen e-mails."""

    def __init__(self, fail_for=(), delay: float = 0.0):
        self.fail_for = set(fail_for)
        self.delay = delay
        self.sent = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, target) -> None:
        import asyncio

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if target.email in self.fail_for:
                from conexus.services.dispatch_service import TransientDispatchError
                raise TransientDispatchError(f"refused {target.email}")
            self.sent.append(target)
        finally:
            self.in_flight -= 1


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def sender_factory():
    """Build notification senders with chosen failures or latency."""
    return RecordingSender


@pytest.fixture
def recording_sender():
    """Sender capturing every notification."""
    return RecordingSender()


@pytest.fixture
def dispatch_registry():
    """A registry private to one test."""
    return DispatchRegistry()


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, recording_sender, dispatch_registry):
    """Create the application with storage, auth and sender overridden."""
    from conexus.main import create_app

    app = create_app()

    async def override_get_db():
        yield test_session

    async def override_operator():
        return {"username": "test-operator", "roles": ["operator"]}

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_operator] = override_operator
    app.dependency_overrides[get_notification_sender] = lambda: recording_sender
    app.dependency_overrides[get_dispatch_registry] = lambda: dispatch_registry

    yield app

    await dispatch_registry.shutdown()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def event(test_session):
    """A persisted event."""
    return await EventService(test_session).create_event(
        CreateEventRequest(title="Student Science Conference", location="Main Campus")
    )


@pytest_asyncio.fixture
async def place(test_session):
    """A persisted dorm."""
    return await AccommodationService(test_session).create_place(CreatePlaceRequest(name="North Dorm"))


@pytest.fixture
def make_room(test_session, place):
    """Factory creating rooms in the sample dorm."""
    async def _make_room(beds: int = 2, name: str = "101"):
        return await AccommodationService(test_session).create_room(
            CreateRoomRequest(place_id=place.id, name=name, beds=beds)
        )
    return _make_room


@pytest.fixture
def make_registration(test_session, event):
    """Factory submitting registrations for the sample event."""
    counter = {"n": 0}

    async def _make_registration(name: str | None = None, email: str | None = None, companions=()):
        counter["n"] += 1
        n = counter["n"]
        return await RegistrationService(test_session).submit(
            SubmitRegistrationRequest(
                event_id=event.id,
                owner_name=name or f"Participant {n}",
                owner_email=email or f"participant{n}@example.edu",
                university="State University",
                companions=list(companions),
            )
        )
    return _make_registration


@pytest.fixture
def sample_registration_data():
    """Sample registration form for API tests (event_id filled in by the test)."""
    return {
        "owner_name": "Ana Kovač",
        "owner_email": "Ana.Kovac@Example.edu",
        "university": "University of Zagreb",
        "companions": [
            {"name": "Marko Kovač", "relation": "Brother", "contact": "+385 91 000 000"}
        ]
    }
