"""Scanning portal and attendance record model definitions."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class Portal(Base):
    """A named scanning point (door, hall) belonging to an event."""

    __tablename__ = "portals"

    # Chosen by the scanning front-end, so a plain string
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    event_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Portal(id='{self.id}', event_id={self.event_id}, name='{self.name}')>"


class AttendanceRecord(Base):
    """
    One accepted scan. Append-only.

    The event, display name and portal label are snapshots, so records stay
    readable and listed under their event after the registration or portal
    is deleted.
    """

    __tablename__ = "attendance_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    registration_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("registrations.id", ondelete="SET NULL"),
        nullable=True
    )

    event_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Not a foreign key: scans from unregistered portals are still recorded
    portal_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    portal_label: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    scanned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    __table_args__ = (
        Index("ix_attendance_records_registration_scanned", "registration_id", "scanned_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecord(id={self.id}, registration_id={self.registration_id}, "
            f"portal_id='{self.portal_id}', scanned_at={self.scanned_at})>"
        )
