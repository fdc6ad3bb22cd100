"""Service layer package."""

from .accommodation_service import AccommodationService, CapacityExceededError
from .attendance_service import AttendanceService, ScanResult
from .card_service import CardConflictError, CardService
from .dispatch_service import BatchDispatchRun, DispatchRegistry, DispatchService, TransientDispatchError
from .event_service import EventService
from .registration_service import RegistrationService

__all__ = [
    "AccommodationService",
    "AttendanceService",
    "BatchDispatchRun",
    "CapacityExceededError",
    "CardConflictError",
    "CardService",
    "DispatchRegistry",
    "DispatchService",
    "EventService",
    "RegistrationService",
    "ScanResult",
    "TransientDispatchError",
]
