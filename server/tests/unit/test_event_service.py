"""Unit tests for event service."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from conexus.core.exceptions import NotFoundError
from conexus.models.registration import RegistrationStatus
from conexus.schemas.attendance import CreatePortalRequest
from conexus.schemas.event import CreateEventRequest
from conexus.services.accommodation_service import AccommodationService
from conexus.services.attendance_service import AttendanceService
from conexus.services.event_service import EventService
from conexus.services.registration_service import RegistrationService


@pytest.mark.asyncio
async def test_create_event(test_session):
    """Test creating a new event."""
    service = EventService(test_session)
    starts_at = datetime(2026, 11, 5, 9, 0)

    event = await service.create_event(
        CreateEventRequest(
            title=" Student Science Conference ",
            location="Main Campus",
            starts_at=starts_at,
            ends_at=starts_at + timedelta(days=2),
        )
    )

    assert event.id is not None
    assert event.title == "Student Science Conference"
    assert event.location == "Main Campus"
    assert event.starts_at == starts_at


def test_event_dates_must_be_ordered():
    """Test that an event cannot end before it starts."""
    with pytest.raises(PydanticValidationError):
        CreateEventRequest(
            title="Backwards",
            starts_at=datetime(2026, 11, 5),
            ends_at=datetime(2026, 11, 4),
        )


@pytest.mark.asyncio
async def test_list_events_soonest_first(test_session):
    """Dated events come first, soonest first."""
    service = EventService(test_session)
    undated = await service.create_event(CreateEventRequest(title="Someday"))
    later = await service.create_event(CreateEventRequest(title="Later", starts_at=datetime(2027, 1, 1)))
    sooner = await service.create_event(CreateEventRequest(title="Sooner", starts_at=datetime(2026, 12, 1)))

    events = await service.list_events()

    assert [e.id for e in events] == [sooner.id, later.id, undated.id]


@pytest.mark.asyncio
async def test_get_unknown_event(test_session):
    """Test getting an event that does not exist."""
    service = EventService(test_session)

    assert await service.get_event_by_id(uuid4()) is None
    with pytest.raises(NotFoundError):
        await service.get_event_by_id_or_raise(uuid4())


@pytest.mark.asyncio
async def test_delete_event_cascades(test_session, event, make_registration, make_room):
    """Deleting an event removes its registrations and portals and frees their seats."""
    ledger = RegistrationService(test_session)
    attendance = AttendanceService(test_session)
    room = await make_room(beds=1)
    registration = await make_registration(name="Gone Soon")
    await ledger.set_status(registration.id, RegistrationStatus.APPROVED, room_id=room.id)
    await ledger.bind_card(registration.id, "CARD-5")
    await attendance.create_portal(CreatePortalRequest(id="gate", event_id=event.id, name="Gate"))
    await attendance.record_scan("gate", "CARD-5")

    await EventService(test_session).delete_event(event.id)

    assert await ledger.get_registration_by_id(registration.id) is None
    assert await ledger.list_registrations() == []
    assert await attendance.list_portals() == []
    assert await AccommodationService(test_session).occupancy(room.id) == 0

    records = await attendance.list_records()
    assert len(records) == 1
    assert records[0].display_name == "Gone Soon"


@pytest.mark.asyncio
async def test_delete_unknown_event(test_session):
    """Test deleting an event that does not exist."""
    with pytest.raises(NotFoundError):
        await EventService(test_session).delete_event(uuid4())
