"""Place and room model definitions."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class PlaceKind(str, Enum):
    """Kind of accommodation."""
    DORM = "DORM"
    HOTEL = "HOTEL"


class Place(Base):
    """A dorm or hotel containing rooms."""

    __tablename__ = "places"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[PlaceKind] = mapped_column(String(10), nullable=False, default=PlaceKind.DORM.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Place(id={self.id}, name='{self.name}', kind={self.kind})>"


class Room(Base):
    """
    A room with a fixed number of beds.

    Occupancy is never stored; it is the number of approved registrations
    pointing at the room.
    """

    __tablename__ = "rooms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    place_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("places.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    beds: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("beds >= 1", name="ck_room_beds_positive"),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, place_id={self.place_id}, name='{self.name}', beds={self.beds})>"
