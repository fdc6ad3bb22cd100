"""Concurrency tests for room allocation, card binding and scans."""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conexus.core.database import Base
from conexus.models import *  # noqa: F403 - register tables
from conexus.models.registration import RegistrationStatus
from conexus.schemas.accommodation import CreatePlaceRequest, CreateRoomRequest
from conexus.schemas.attendance import CreatePortalRequest, ScanOutcome
from conexus.schemas.event import CreateEventRequest
from conexus.schemas.registration import SubmitRegistrationRequest
from conexus.services.accommodation_service import AccommodationService, CapacityExceededError
from conexus.services.attendance_service import AttendanceService
from conexus.services.card_service import CardConflictError
from conexus.services.event_service import EventService
from conexus.services.registration_service import RegistrationService


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Sessions on a file database, one connection per session."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


async def seed(session_factory, registrations: int, beds: int):
    """Create an event, one room and a batch of pending registrations."""
    async with session_factory() as db:
        event = await EventService(db).create_event(CreateEventRequest(title="Busy Conference"))
        accommodation = AccommodationService(db)
        place = await accommodation.create_place(CreatePlaceRequest(name="Dorm"))
        room = await accommodation.create_room(CreateRoomRequest(place_id=place.id, name="1", beds=beds))

        ledger = RegistrationService(db)
        created = [
            await ledger.submit(SubmitRegistrationRequest(
                event_id=event.id, owner_name=f"Guest {i}", owner_email=f"guest{i}@example.edu"
            ))
            for i in range(registrations)
        ]
        return event.id, room.id, [r.id for r in created]


@pytest.mark.asyncio
async def test_concurrent_approvals_no_overbooking(session_factory):
    """Concurrent approvals into one room never exceed its beds."""
    _, room_id, registration_ids = await seed(session_factory, registrations=10, beds=3)

    async def approve(registration_id):
        async with session_factory() as db:
            try:
                await RegistrationService(db).set_status(
                    registration_id, RegistrationStatus.APPROVED, room_id=room_id
                )
                return True
            except CapacityExceededError:
                return False

    results = await asyncio.gather(*(approve(rid) for rid in registration_ids))

    assert sum(results) == 3

    async with session_factory() as db:
        assert await AccommodationService(db).occupancy(room_id) == 3
        approved = await RegistrationService(db).list_registrations(status=RegistrationStatus.APPROVED)
        assert len(approved) == 3
        assert all(r.room_id == room_id for r in approved)


@pytest.mark.asyncio
async def test_concurrent_card_binding_single_winner(session_factory):
    """Many registrations racing for one card: exactly one gets it."""
    _, _, registration_ids = await seed(session_factory, registrations=6, beds=1)

    async def bind(registration_id):
        async with session_factory() as db:
            try:
                await RegistrationService(db).bind_card(registration_id, "SHARED-CARD")
                return registration_id
            except CardConflictError as e:
                return e.held_by

    results = await asyncio.gather(*(bind(rid) for rid in registration_ids))

    winners = set(results)
    assert len(winners) == 1
    winner = winners.pop()
    assert winner in registration_ids

    async with session_factory() as db:
        holders = [r for r in await RegistrationService(db).list_registrations() if r.bound_card == "SHARED-CARD"]
        assert [r.id for r in holders] == [winner]


@pytest.mark.asyncio
async def test_concurrent_scans_record_once(session_factory):
    """Simultaneous scans of one card write a single attendance record."""
    event_id, _, registration_ids = await seed(session_factory, registrations=1, beds=1)
    registration_id = registration_ids[0]

    async with session_factory() as db:
        ledger = RegistrationService(db)
        await ledger.set_status(registration_id, RegistrationStatus.APPROVED)
        await ledger.bind_card(registration_id, "CARD-1")
        await AttendanceService(db).create_portal(CreatePortalRequest(id="gate", event_id=event_id, name="Gate"))

    async def scan():
        async with session_factory() as db:
            result = await AttendanceService(db).record_scan("gate", "CARD-1")
            return result.outcome

    outcomes = await asyncio.gather(*(scan() for _ in range(5)))

    assert outcomes.count(ScanOutcome.SUCCESS) == 1
    assert outcomes.count(ScanOutcome.DUPLICATE_SCAN) == 4

    async with session_factory() as db:
        assert len(await AttendanceService(db).list_records()) == 1
