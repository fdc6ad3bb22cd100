"""Event service for business logic operations."""

import logging
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..models.attendance import AttendanceRecord, Portal
from ..models.event import Event
from ..models.registration import Companion, Registration
from ..schemas.event import CreateEventRequest

logger = logging.getLogger(__name__)


class EventService:
    """Service for event-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_event(self, request: CreateEventRequest) -> Event:
        """
        Create a new event.

        Args:
            request: Event creation request

        Returns:
            Created event entity
        """
        event = Event(
            title=request.title.strip(),
            location=request.location,
            starts_at=request.starts_at,
            ends_at=request.ends_at,
        )

        self.db.add(event)
        await self.db.commit()

        logger.info(
            "Event created successfully",
            extra={"event_id": str(event.id), "title": event.title}
        )

        return event

    async def get_event_by_id(self, event_id: UUID) -> Event | None:
        """Get event by ID, or None."""
        return await self.db.get(Event, event_id)

    async def get_event_by_id_or_raise(self, event_id: UUID) -> Event:
        """
        Get event by ID or raise NotFoundError.

        Raises:
            NotFoundError: If event not found
        """
        event = await self.get_event_by_id(event_id)
        if not event:
            raise NotFoundError(resource_type="event", resource_id=str(event_id))
        return event

    async def list_events(self) -> list[Event]:
        """List events, soonest first, undated events last."""
        result = await self.db.execute(
            select(Event).order_by(Event.starts_at.is_(None), Event.starts_at, Event.created_at)
        )
        return list(result.scalars().all())

    async def delete_event(self, event_id: UUID) -> None:
        """
        Delete an event together with its registrations and portals.

        Deleting a registration releases its seat and card implicitly, since
        neither is stored anywhere but on the registration row. Attendance
        records survive with their snapshot and lose the registration link.

        Raises:
            NotFoundError: If event not found
        """
        event = await self.get_event_by_id_or_raise(event_id)

        registration_ids = select(Registration.id).where(Registration.event_id == event_id)

        await self.db.execute(
            update(AttendanceRecord)
            .where(AttendanceRecord.registration_id.in_(registration_ids))
            .values(registration_id=None)
        )
        await self.db.execute(
            delete(Companion).where(Companion.registration_id.in_(registration_ids))
        )
        removed = await self.db.execute(
            delete(Registration).where(Registration.event_id == event_id)
        )
        await self.db.execute(delete(Portal).where(Portal.event_id == event_id))
        await self.db.delete(event)
        await self.db.commit()

        logger.info(
            "Event deleted",
            extra={"event_id": str(event_id), "registrations_removed": removed.rowcount}
        )
