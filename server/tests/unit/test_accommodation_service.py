"""Unit tests for places, rooms and occupancy."""

from uuid import uuid4

import pytest

from conexus.core.exceptions import NotFoundError
from conexus.models.registration import RegistrationStatus
from conexus.schemas.accommodation import CreatePlaceRequest, CreateRoomRequest, PlaceKind
from conexus.services.accommodation_service import AccommodationService
from conexus.services.registration_service import RegistrationService


@pytest.mark.asyncio
async def test_create_place_and_room(test_session):
    """Test creating a hotel with one room."""
    service = AccommodationService(test_session)

    hotel = await service.create_place(CreatePlaceRequest(name=" Hotel Central ", kind=PlaceKind.HOTEL))
    room = await service.create_room(CreateRoomRequest(place_id=hotel.id, name="12", beds=3))

    assert hotel.name == "Hotel Central"
    assert hotel.kind == PlaceKind.HOTEL.value
    assert room.place_id == hotel.id
    assert room.beds == 3

    places = await service.list_places()
    assert [p.id for p in places] == [hotel.id]


@pytest.mark.asyncio
async def test_create_room_in_unknown_place(test_session):
    """Test creating a room for a place that does not exist."""
    service = AccommodationService(test_session)

    with pytest.raises(NotFoundError):
        await service.create_room(CreateRoomRequest(place_id=uuid4(), name="1", beds=1))


@pytest.mark.asyncio
async def test_occupancy_counts_only_approved(test_session, make_registration, make_room):
    """Pending and rejected registrations never take a bed."""
    accommodation = AccommodationService(test_session)
    ledger = RegistrationService(test_session)
    room = await make_room(beds=3)

    approved = await make_registration()
    await ledger.set_status(approved.id, RegistrationStatus.APPROVED, room_id=room.id)
    revoked = await make_registration()
    await ledger.set_status(revoked.id, RegistrationStatus.APPROVED, room_id=room.id)
    await ledger.set_status(revoked.id, RegistrationStatus.REJECTED, note="Cancelled")
    await make_registration()

    assert await accommodation.occupancy(room.id) == 1
    assert await accommodation.occupancy(room.id, exclude_registration_id=approved.id) == 0


@pytest.mark.asyncio
async def test_list_rooms_reports_occupancy(test_session, place, make_registration, make_room):
    """Each listed room carries its derived occupancy."""
    accommodation = AccommodationService(test_session)
    ledger = RegistrationService(test_session)
    single = await make_room(beds=1, name="101")
    double = await make_room(beds=2, name="102")

    registration = await make_registration()
    await ledger.set_status(registration.id, RegistrationStatus.APPROVED, room_id=single.id)

    rooms = await accommodation.list_rooms(place_id=place.id)

    occupancy = {room.id: count for room, count in rooms}
    assert occupancy == {single.id: 1, double.id: 0}
    assert [room.name for room, _ in rooms] == ["101", "102"]


@pytest.mark.asyncio
async def test_delete_room_clears_assignments(test_session, make_registration, make_room):
    """Deleting a room unassigns registrations but keeps their status."""
    accommodation = AccommodationService(test_session)
    ledger = RegistrationService(test_session)
    room = await make_room(beds=2)
    registration = await make_registration()
    await ledger.set_status(registration.id, RegistrationStatus.APPROVED, room_id=room.id)

    cleared = await accommodation.delete_room(room.id)

    assert cleared == 1
    reloaded = await ledger.get_registration_by_id_or_raise(registration.id)
    assert reloaded.room_id is None
    assert reloaded.status == RegistrationStatus.APPROVED.value

    with pytest.raises(NotFoundError):
        await accommodation.get_room_by_id_or_raise(room.id)


@pytest.mark.asyncio
async def test_delete_place_removes_rooms(test_session, place, make_registration, make_room):
    """Deleting a place removes every room in it."""
    accommodation = AccommodationService(test_session)
    ledger = RegistrationService(test_session)
    first = await make_room(beds=1, name="101")
    await make_room(beds=1, name="102")
    registration = await make_registration()
    await ledger.set_status(registration.id, RegistrationStatus.APPROVED, room_id=first.id)

    cleared = await accommodation.delete_place(place.id)

    assert cleared == 1
    assert await accommodation.list_rooms() == []
    assert await accommodation.list_places() == []
    reloaded = await ledger.get_registration_by_id_or_raise(registration.id)
    assert reloaded.room_id is None


@pytest.mark.asyncio
async def test_delete_unknown_place(test_session):
    """Test deleting a place that does not exist."""
    with pytest.raises(NotFoundError):
        await AccommodationService(test_session).delete_place(uuid4())
