"""Attendance recorder: portal scans with sliding-window deduplication."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import ConflictError, NotFoundError
from ..core.locks import resource_lock
from ..core.observability import metrics_collector
from ..models.attendance import AttendanceRecord, Portal
from ..models.registration import Registration, RegistrationStatus
from ..schemas.attendance import CreatePortalRequest, ScanOutcome
from .event_service import EventService

logger = logging.getLogger(__name__)

UNKNOWN_PORTAL_LABEL = "Unknown"


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one scan. Duplicates are results, not errors."""

    outcome: ScanOutcome
    display_name: Optional[str] = None
    registration_id: Optional[UUID] = None
    portal_label: Optional[str] = None
    scanned_at: Optional[datetime] = None


class AttendanceService:
    """Service for portals, scans and the attendance log."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.event_service = EventService(db)

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(seconds=settings.attendance_dedup_window_seconds)

    async def record_scan(self, portal_id: str, code: str, now: Optional[datetime] = None) -> ScanResult:
        """
        Record a scan at a portal.

        The code is matched against bound cards first and then, if enabled,
        against owner e-mail. Approved registrants get a new attendance
        record unless they already have one inside the dedup window.

        Args:
            portal_id: Portal that read the code
            code: Card value or e-mail address
            now: Scan time (naive UTC); defaults to the current time

        Returns:
            Scan result with one of the four outcomes
        """
        now = now or datetime.utcnow()
        code = code.strip()

        portal = await self.db.get(Portal, portal_id)
        portal_label = portal.name if portal else UNKNOWN_PORTAL_LABEL

        registration = await self.resolve_code(code, event_id=portal.event_id if portal else None)
        if registration is None:
            return self._finish(ScanResult(outcome=ScanOutcome.NOT_FOUND, portal_label=portal_label), portal_id)

        if RegistrationStatus(registration.status) is not RegistrationStatus.APPROVED:
            return self._finish(
                ScanResult(
                    outcome=ScanOutcome.NOT_APPROVED,
                    display_name=registration.owner_name,
                    registration_id=registration.id,
                    portal_label=portal_label
                ),
                portal_id
            )

        async with resource_lock(self.db, "attendance", registration.id):
            last_scan = await self.latest_scan_time(registration.id)

            if last_scan is not None and last_scan > now - self.dedup_window:
                result = ScanResult(
                    outcome=ScanOutcome.DUPLICATE_SCAN,
                    display_name=registration.owner_name,
                    registration_id=registration.id,
                    portal_label=portal_label,
                    scanned_at=last_scan
                )
            else:
                self.db.add(AttendanceRecord(
                    registration_id=registration.id,
                    event_id=registration.event_id,
                    portal_id=portal_id,
                    portal_label=portal_label,
                    display_name=registration.owner_name,
                    scanned_at=now
                ))
                await self.db.commit()

                result = ScanResult(
                    outcome=ScanOutcome.SUCCESS,
                    display_name=registration.owner_name,
                    registration_id=registration.id,
                    portal_label=portal_label,
                    scanned_at=now
                )

        return self._finish(result, portal_id)

    def _finish(self, result: ScanResult, portal_id: str) -> ScanResult:
        metrics_collector.record_scan(result.outcome.value)
        logger.info(
            "Scan processed",
            extra={
                "portal_id": portal_id,
                "outcome": result.outcome.value,
                "registration_id": str(result.registration_id) if result.registration_id else None
            }
        )
        return result

    async def resolve_code(self, code: str, event_id: Optional[UUID] = None) -> Registration | None:
        """
        Find the registration a scanned code refers to.

        Among several e-mail matches, one for the portal's event wins, then
        an approved one, then the newest.
        """
        if not code:
            return None

        result = await self.db.execute(select(Registration).where(Registration.bound_card == code))
        registration = result.scalar_one_or_none()
        if registration is not None or not settings.scan_match_email_fallback:
            return registration

        ordering = []
        if event_id is not None:
            ordering.append(case((Registration.event_id == event_id, 0), else_=1))
        ordering.append(case((Registration.status == RegistrationStatus.APPROVED.value, 0), else_=1))
        ordering.append(Registration.created_at.desc())

        result = await self.db.execute(
            select(Registration)
            .where(Registration.owner_email == code.lower())
            .order_by(*ordering)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_scan_time(self, registration_id: UUID) -> datetime | None:
        result = await self.db.execute(
            select(func.max(AttendanceRecord.scanned_at))
            .where(AttendanceRecord.registration_id == registration_id)
        )
        return result.scalar_one_or_none()

    async def create_portal(self, request: CreatePortalRequest) -> Portal:
        """
        Create a scanning portal for an event.

        Raises:
            NotFoundError: If event not found
            ConflictError: If the portal ID is taken
        """
        await self.event_service.get_event_by_id_or_raise(request.event_id)

        portal_id = request.id or f"portal-{secrets.token_hex(4)}"
        if await self.db.get(Portal, portal_id):
            error = ConflictError(
                detail=f"Portal '{portal_id}' already exists",
                conflicting_resource={"portal_id": portal_id}
            )
            error.problem_details.update({"code": "PORTAL_EXISTS", "retryable": False})
            raise error

        portal = Portal(id=portal_id, event_id=request.event_id, name=request.name.strip())

        self.db.add(portal)
        await self.db.commit()

        logger.info(
            "Portal created",
            extra={"portal_id": portal.id, "event_id": str(portal.event_id)}
        )

        return portal

    async def delete_portal(self, portal_id: str) -> None:
        """
        Delete a portal. Its attendance records are kept.

        Raises:
            NotFoundError: If portal not found
        """
        portal = await self.db.get(Portal, portal_id)
        if not portal:
            raise NotFoundError(resource_type="portal", resource_id=portal_id)

        await self.db.delete(portal)
        await self.db.commit()

        logger.info("Portal deleted", extra={"portal_id": portal_id})

    async def list_portals(self, event_id: Optional[UUID] = None) -> list[Portal]:
        stmt = select(Portal).order_by(Portal.name)
        if event_id is not None:
            stmt = stmt.where(Portal.event_id == event_id)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_records(self, event_id: Optional[UUID] = None, limit: int = 200) -> list[AttendanceRecord]:
        """Attendance log, newest first."""
        stmt = select(AttendanceRecord).order_by(AttendanceRecord.scanned_at.desc()).limit(limit)
        if event_id is not None:
            stmt = stmt.where(AttendanceRecord.event_id == event_id)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
