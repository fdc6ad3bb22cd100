"""Accommodation allocator: places, rooms and derived occupancy."""

import logging
from contextlib import AsyncExitStack
from typing import AsyncContextManager
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..core.locks import resource_lock
from ..core.observability import metrics_collector
from ..models.accommodation import Place, PlaceKind, Room
from ..models.registration import Registration, RegistrationStatus
from ..schemas.accommodation import CreatePlaceRequest, CreateRoomRequest

logger = logging.getLogger(__name__)


class CapacityExceededError(ConflictError):
    """Exception when a room has no free bed."""

    def __init__(self, room_id: UUID, beds: int, occupancy: int):
        super().__init__(
            detail=f"Room {room_id} is full ({occupancy}/{beds} beds taken)",
            conflicting_resource={
                "room_id": str(room_id),
                "beds": beds,
                "occupancy": occupancy
            }
        )
        self.problem_details.update({
            "code": "CAPACITY_EXCEEDED",
            "retryable": False
        })
        self.room_id = room_id
        self.beds = beds
        self.occupancy = occupancy


def occupancy_expression():
    """Correlated count of approved registrations in ``Room``."""
    return (
        select(func.count(Registration.id))
        .where(
            Registration.room_id == Room.id,
            Registration.status == RegistrationStatus.APPROVED.value
        )
        .correlate(Room)
        .scalar_subquery()
    )


class AccommodationService:
    """
    Service for places, rooms and seat allocation.

    ``try_assign`` and ``release`` never commit: they take part in the
    caller's transaction so a status change and its seat land together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def room_lock(self, room_id: UUID) -> AsyncContextManager[None]:
        """Lock serializing capacity decisions for one room."""
        return resource_lock(self.db, "room", room_id)

    async def create_place(self, request: CreatePlaceRequest) -> Place:
        """
        Create a dorm or hotel.

        Args:
            request: Place creation request

        Returns:
            Created place entity
        """
        place = Place(name=request.name.strip(), kind=PlaceKind(request.kind.value).value)

        self.db.add(place)
        await self.db.commit()

        logger.info(
            "Place created successfully",
            extra={"place_id": str(place.id), "place_name": place.name, "kind": place.kind}
        )

        return place

    async def get_place_by_id_or_raise(self, place_id: UUID) -> Place:
        place = await self.db.get(Place, place_id)
        if not place:
            raise NotFoundError(resource_type="place", resource_id=str(place_id))
        return place

    async def list_places(self) -> list[Place]:
        result = await self.db.execute(select(Place).order_by(Place.name))
        return list(result.scalars().all())

    async def create_room(self, request: CreateRoomRequest) -> Room:
        """
        Create a room in an existing place.

        Args:
            request: Room creation request

        Returns:
            Created room entity

        Raises:
            NotFoundError: If place not found
        """
        await self.get_place_by_id_or_raise(request.place_id)

        room = Room(place_id=request.place_id, name=request.name.strip(), beds=request.beds)

        self.db.add(room)
        await self.db.commit()

        logger.info(
            "Room created successfully",
            extra={"room_id": str(room.id), "place_id": str(room.place_id), "beds": room.beds}
        )

        return room

    async def get_room_by_id_or_raise(self, room_id: UUID) -> Room:
        room = await self.db.get(Room, room_id)
        if not room:
            raise NotFoundError(resource_type="room", resource_id=str(room_id))
        return room

    async def occupancy(self, room_id: UUID, exclude_registration_id: UUID | None = None) -> int:
        """
        Count approved registrations assigned to a room.

        Args:
            room_id: Room to count
            exclude_registration_id: Registration left out of the count

        Returns:
            Number of occupied beds
        """
        stmt = select(func.count(Registration.id)).where(
            Registration.room_id == room_id,
            Registration.status == RegistrationStatus.APPROVED.value
        )
        if exclude_registration_id is not None:
            stmt = stmt.where(Registration.id != exclude_registration_id)

        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def list_rooms(self, place_id: UUID | None = None) -> list[tuple[Room, int]]:
        """List rooms with their current occupancy."""
        stmt = select(Room, occupancy_expression().label("occupancy")).order_by(Room.place_id, Room.name)
        if place_id is not None:
            stmt = stmt.where(Room.place_id == place_id)

        result = await self.db.execute(stmt)
        return [(room, occupancy) for room, occupancy in result.all()]

    async def try_assign(self, registration: Registration, room_id: UUID) -> Room:
        """
        Give a registration a bed in a room if one is free.

        The caller must hold ``room_lock(room_id)`` until it commits.

        Args:
            registration: Registration receiving the seat
            room_id: Requested room

        Returns:
            The room

        Raises:
            NotFoundError: If room not found
            CapacityExceededError: If every bed is taken
        """
        room = await self.get_room_by_id_or_raise(room_id)
        occupied = await self.occupancy(room_id, exclude_registration_id=registration.id)

        if occupied >= room.beds:
            metrics_collector.record_capacity_rejection()
            logger.warning(
                "Room assignment failed - room full",
                extra={
                    "registration_id": str(registration.id),
                    "room_id": str(room_id),
                    "beds": room.beds,
                    "occupancy": occupied
                }
            )
            raise CapacityExceededError(room_id=room_id, beds=room.beds, occupancy=occupied)

        if registration.room_id is not None and registration.room_id != room_id:
            await self.vacate(registration)

        registration.room_id = room_id
        metrics_collector.set_room_occupancy(str(room_id), occupied + 1)

        logger.debug(
            "Seat reserved",
            extra={"registration_id": str(registration.id), "room_id": str(room_id)}
        )

        return room

    async def vacate(self, registration: Registration) -> None:
        """Report the registration's room without it, when it stops counting there."""
        if registration.room_id is None:
            return

        remaining = await self.occupancy(registration.room_id, exclude_registration_id=registration.id)
        metrics_collector.set_room_occupancy(str(registration.room_id), remaining)

    async def release(self, registration: Registration) -> None:
        """Clear a registration's room, if any."""
        if registration.room_id is None:
            return

        await self.vacate(registration)

        logger.debug(
            "Seat released",
            extra={"registration_id": str(registration.id), "room_id": str(registration.room_id)}
        )
        registration.room_id = None

    async def delete_room(self, room_id: UUID) -> int:
        """
        Delete a room and clear it from every registration pointing at it.

        Registration status is left untouched.

        Returns:
            Number of registrations that lost their room

        Raises:
            NotFoundError: If room not found
        """
        async with self.room_lock(room_id):
            room = await self.get_room_by_id_or_raise(room_id)
            cleared = await self._clear_rooms([room.id])
            await self.db.delete(room)
            await self.db.commit()

        logger.info(
            "Room deleted",
            extra={"room_id": str(room_id), "registrations_cleared": cleared}
        )

        return cleared

    async def delete_place(self, place_id: UUID) -> int:
        """
        Delete a place and all of its rooms.

        Returns:
            Number of registrations that lost their room

        Raises:
            NotFoundError: If place not found
        """
        place = await self.get_place_by_id_or_raise(place_id)
        result = await self.db.execute(select(Room.id).where(Room.place_id == place_id))
        room_ids = sorted(result.scalars().all(), key=str)

        async with AsyncExitStack() as locks:
            for room_id in room_ids:
                await locks.enter_async_context(self.room_lock(room_id))

            cleared = await self._clear_rooms(room_ids)
            await self.db.execute(delete(Room).where(Room.place_id == place_id))
            await self.db.delete(place)
            await self.db.commit()

        logger.info(
            "Place deleted",
            extra={"place_id": str(place_id), "rooms_removed": len(room_ids), "registrations_cleared": cleared}
        )

        return cleared

    async def _clear_rooms(self, room_ids: list[UUID]) -> int:
        if not room_ids:
            return 0

        result = await self.db.execute(
            update(Registration)
            .where(Registration.room_id.in_(room_ids))
            .values(room_id=None)
            .execution_options(synchronize_session="fetch")
        )
        for room_id in room_ids:
            metrics_collector.set_room_occupancy(str(room_id), 0)
        return result.rowcount
