"""Registration ledger: submission, approval workflow and removal."""

import logging
from contextlib import AsyncExitStack
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import NotFoundError, ValidationError
from ..core.locks import resource_lock
from ..core.observability import metrics_collector
from ..models.attendance import AttendanceRecord
from ..models.registration import Companion, Registration, RegistrationStatus
from ..schemas.registration import SubmitRegistrationRequest
from .accommodation_service import AccommodationService
from .card_service import CardService
from .event_service import EventService

logger = logging.getLogger(__name__)


# Every status may move to every other one; flags narrow this below.
REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING_APPROVAL: frozenset({RegistrationStatus.APPROVED, RegistrationStatus.REJECTED}),
    RegistrationStatus.APPROVED: frozenset({RegistrationStatus.PENDING_APPROVAL, RegistrationStatus.REJECTED}),
    RegistrationStatus.REJECTED: frozenset({RegistrationStatus.PENDING_APPROVAL, RegistrationStatus.APPROVED}),
}


def allowed_transitions(
    current: RegistrationStatus,
    allow_rejected_to_approved: Optional[bool] = None,
) -> frozenset[RegistrationStatus]:
    """Statuses reachable from ``current`` under the configured policy."""
    if allow_rejected_to_approved is None:
        allow_rejected_to_approved = settings.allow_rejected_to_approved

    targets = REGISTRATION_TRANSITIONS[current]
    if current is RegistrationStatus.REJECTED and not allow_rejected_to_approved:
        targets = targets - {RegistrationStatus.APPROVED}
    return targets


def check_transition(
    current: RegistrationStatus,
    target: RegistrationStatus,
    room_id: Optional[UUID] = None,
    note: Optional[str] = None,
    allow_rejected_to_approved: Optional[bool] = None,
    require_revoke_note: Optional[bool] = None,
) -> None:
    """
    Validate a status change before anything is written.

    Raises:
        ValidationError: With code NO_OP_TRANSITION, TRANSITION_NOT_ALLOWED,
            ROOM_REQUIRES_APPROVAL or NOTE_REQUIRED
    """
    if require_revoke_note is None:
        require_revoke_note = settings.require_revoke_note

    if current is target:
        raise ValidationError(
            f"Registration is already {target.value}",
            code="NO_OP_TRANSITION"
        )

    if target not in allowed_transitions(current, allow_rejected_to_approved):
        raise ValidationError(
            f"Cannot move a registration from {current.value} to {target.value}",
            code="TRANSITION_NOT_ALLOWED"
        )

    if room_id is not None and target is not RegistrationStatus.APPROVED:
        raise ValidationError(
            "A room can only be assigned together with approval",
            code="ROOM_REQUIRES_APPROVAL"
        )

    is_revoke = current is RegistrationStatus.APPROVED and target is RegistrationStatus.REJECTED
    if is_revoke and require_revoke_note and not (note and note.strip()):
        raise ValidationError(
            "A note is required when revoking an approved registration",
            code="NOTE_REQUIRED"
        )


class RegistrationService:
    """Service for registration-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.event_service = EventService(db)
        self.accommodation_service = AccommodationService(db)
        self.card_service = CardService(db)

    async def submit(self, request: SubmitRegistrationRequest) -> Registration:
        """
        Create a registration awaiting approval.

        The same person may register more than once for the same event.

        Args:
            request: Registration form

        Returns:
            Created registration entity

        Raises:
            NotFoundError: If event not found
        """
        await self.event_service.get_event_by_id_or_raise(request.event_id)

        registration = Registration(
            event_id=request.event_id,
            owner_name=request.owner_name.strip(),
            owner_email=request.owner_email.strip().lower(),
            university=request.university,
            status=RegistrationStatus.PENDING_APPROVAL.value,
            companions=[
                Companion(
                    position=position,
                    name=companion.name.strip(),
                    relation=companion.relation,
                    contact=companion.contact
                )
                for position, companion in enumerate(request.companions)
            ],
        )

        self.db.add(registration)
        await self.db.commit()

        metrics_collector.record_registration_submitted()
        logger.info(
            "Registration submitted",
            extra={
                "registration_id": str(registration.id),
                "event_id": str(registration.event_id),
                "participants": registration.participants_count
            }
        )

        return registration

    async def get_registration_by_id(self, registration_id: UUID) -> Registration | None:
        """Get registration by ID, reloading it from the database."""
        result = await self.db.execute(
            select(Registration)
            .where(Registration.id == registration_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_registration_by_id_or_raise(self, registration_id: UUID) -> Registration:
        """
        Get registration by ID or raise NotFoundError.

        Raises:
            NotFoundError: If registration not found
        """
        registration = await self.get_registration_by_id(registration_id)
        if not registration:
            raise NotFoundError(resource_type="registration", resource_id=str(registration_id))
        return registration

    async def list_registrations(
        self,
        event_id: UUID | None = None,
        status: RegistrationStatus | None = None,
    ) -> list[Registration]:
        """List registrations, oldest first."""
        stmt = select(Registration).order_by(Registration.created_at, Registration.id)
        if event_id is not None:
            stmt = stmt.where(Registration.event_id == event_id)
        if status is not None:
            stmt = stmt.where(Registration.status == RegistrationStatus(status).value)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def set_status(
        self,
        registration_id: UUID,
        new_status: RegistrationStatus,
        room_id: UUID | None = None,
        note: str | None = None,
    ) -> Registration:
        """
        Move a registration to a new status, optionally assigning a room.

        Approval with a room only commits if the room has a free bed; the
        seat and the status change are written in one transaction.
        Re-approving a registration that kept its room re-checks that room.
        On revoke (APPROVED to REJECTED) the seat is kept unless
        ``release_room_on_revoke`` is set.

        Args:
            registration_id: Registration to update
            new_status: Target status
            room_id: Room to assign; only valid with APPROVED
            note: Operator note; required when revoking an approval

        Returns:
            The updated registration

        Raises:
            NotFoundError: If registration or room not found
            ValidationError: If the transition is not allowed
            CapacityExceededError: If the room is full
        """
        new_status = RegistrationStatus(new_status)

        async with AsyncExitStack() as locks:
            await locks.enter_async_context(resource_lock(self.db, "registration", registration_id))

            registration = await self.get_registration_by_id_or_raise(registration_id)
            current = RegistrationStatus(registration.status)

            check_transition(current, new_status, room_id=room_id, note=note)

            target_room = room_id
            if target_room is None and new_status is RegistrationStatus.APPROVED:
                target_room = registration.room_id

            if target_room is not None:
                await locks.enter_async_context(self.accommodation_service.room_lock(target_room))
                await self.accommodation_service.try_assign(registration, target_room)
            elif current is RegistrationStatus.APPROVED:
                if new_status is RegistrationStatus.REJECTED and settings.release_room_on_revoke:
                    await self.accommodation_service.release(registration)
                else:
                    await self.accommodation_service.vacate(registration)

            registration.status = new_status.value
            if note and note.strip():
                registration.admin_note = note.strip()

            await self.db.commit()

        metrics_collector.record_status_change(current.value, new_status.value)
        logger.info(
            "Registration status changed",
            extra={
                "registration_id": str(registration_id),
                "from_status": current.value,
                "to_status": new_status.value,
                "room_id": str(registration.room_id) if registration.room_id else None
            }
        )

        return registration

    async def assign_room(self, registration_id: UUID, room_id: UUID) -> Registration:
        """
        Move an approved registration to another room.

        Raises:
            NotFoundError: If registration or room not found
            ValidationError: If the registration is not approved
            CapacityExceededError: If the room is full
        """
        async with resource_lock(self.db, "registration", registration_id):
            registration = await self.get_registration_by_id_or_raise(registration_id)

            if RegistrationStatus(registration.status) is not RegistrationStatus.APPROVED:
                raise ValidationError(
                    "Only approved registrations can be given a room",
                    code="ROOM_REQUIRES_APPROVAL"
                )

            previous_room = registration.room_id
            async with self.accommodation_service.room_lock(room_id):
                await self.accommodation_service.try_assign(registration, room_id)
                await self.db.commit()

        logger.info(
            "Registration moved to room",
            extra={
                "registration_id": str(registration_id),
                "from_room_id": str(previous_room) if previous_room else None,
                "to_room_id": str(room_id)
            }
        )

        return registration

    async def bind_card(self, registration_id: UUID, card_value: str) -> Registration:
        """
        Bind an identity card to a registration.

        Raises:
            NotFoundError: If registration not found
            CardConflictError: If another registration holds the card
        """
        async with resource_lock(self.db, "registration", registration_id):
            registration = await self.get_registration_by_id_or_raise(registration_id)
            return await self.card_service.bind(registration, card_value)

    async def delete(self, registration_id: UUID) -> None:
        """
        Delete a registration, freeing its seat and card.

        Attendance records already written keep their snapshot.

        Raises:
            NotFoundError: If registration not found
        """
        async with resource_lock(self.db, "registration", registration_id):
            registration = await self.get_registration_by_id_or_raise(registration_id)
            room_id = registration.room_id

            await self.accommodation_service.release(registration)
            self.card_service.unbind(registration)

            await self.db.execute(
                update(AttendanceRecord)
                .where(AttendanceRecord.registration_id == registration_id)
                .values(registration_id=None)
            )
            await self.db.delete(registration)
            await self.db.commit()

        logger.info(
            "Registration deleted",
            extra={
                "registration_id": str(registration_id),
                "released_room_id": str(room_id) if room_id else None
            }
        )
