"""Registration and companion model definitions."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base


class RegistrationStatus(str, Enum):
    """Registration approval status enumeration."""
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Registration(Base):
    """
    A request by one owner, plus companions, to attend an event.

    ``room_id`` is only ever set while the registration is approved, and a
    bound card value is unique across all registrations.
    """

    __tablename__ = "registrations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    event_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Owner identity
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    university: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[RegistrationStatus] = mapped_column(
        String(20),
        nullable=False,
        default=RegistrationStatus.PENDING_APPROVAL.value,
        index=True
    )

    room_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("rooms.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    bound_card: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("length(owner_name) > 0", name="ck_registration_owner_name_not_empty"),
        CheckConstraint("length(owner_email) > 0", name="ck_registration_owner_email_not_empty"),
    )

    companions: Mapped[list["Companion"]] = relationship(
        "Companion",
        back_populates="registration",
        cascade="all, delete-orphan",
        order_by="Companion.position",
        lazy="selectin"
    )

    @property
    def participants_count(self) -> int:
        """Owner plus companions."""
        return 1 + len(self.companions)

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, event_id={self.event_id}, "
            f"status={self.status}, room_id={self.room_id})>"
        )


class Companion(Base):
    """A person travelling with the registration owner."""

    __tablename__ = "registration_companions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    registration_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("registrations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    relation: Mapped[str | None] = mapped_column(String(64), nullable=True)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)

    registration: Mapped["Registration"] = relationship("Registration", back_populates="companions")

    def __repr__(self) -> str:
        return f"<Companion(registration_id={self.registration_id}, position={self.position}, name='{self.name}')>"
