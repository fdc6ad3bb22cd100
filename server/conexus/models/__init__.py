"""Models module exporting all database models."""

from .accommodation import Place, PlaceKind, Room
from .attendance import AttendanceRecord, Portal
from .event import Event
from .registration import Companion, Registration, RegistrationStatus

__all__ = [
    # Core entities
    "Event",
    "Registration",
    "RegistrationStatus",
    "Companion",

    # Accommodation entities
    "Place",
    "PlaceKind",
    "Room",

    # Attendance entities
    "Portal",
    "AttendanceRecord",
]
