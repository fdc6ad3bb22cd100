"""Attendance-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ScanOutcome(str, Enum):
    """Result of a scan at a portal."""
    SUCCESS = "SUCCESS"
    DUPLICATE_SCAN = "DUPLICATE_SCAN"
    NOT_APPROVED = "NOT_APPROVED"
    NOT_FOUND = "NOT_FOUND"


class ScanRequest(BaseModel):
    """Request schema for a portal scan."""

    portal_id: str = Field(..., min_length=1, max_length=64, description="Portal that read the code")
    code: str = Field(..., min_length=1, max_length=320, description="Card value or owner e-mail")


class ScanResponse(BaseModel):
    """Scan result schema. Every outcome is a 200 response."""

    outcome: ScanOutcome = Field(..., description="Scan outcome")
    display_name: Optional[str] = Field(None, description="Registrant name when known")
    registration_id: Optional[str] = Field(None, description="Matched registration")
    portal_label: Optional[str] = Field(None, description="Portal name used for the record")
    scanned_at: Optional[datetime] = Field(None, description="Record time for successful scans")


class CreatePortalRequest(BaseModel):
    """Request schema for creating a portal."""

    id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9_\-]+$",
        description="Portal ID; generated when omitted"
    )
    event_id: UUID = Field(..., description="Event the portal belongs to")
    name: str = Field(..., min_length=1, max_length=255, description="Portal name")


class DeletePortalRequest(BaseModel):
    """Request schema for deleting a portal."""

    id: str = Field(..., min_length=1, max_length=64, description="Portal to delete")


class ListPortalsRequest(BaseModel):
    """Request schema for listing portals."""

    event_id: Optional[UUID] = Field(None, description="Restrict to one event")


class ListAttendanceRecordsRequest(BaseModel):
    """Request schema for reading the attendance log."""

    event_id: Optional[UUID] = Field(None, description="Restrict to portals of one event")
    limit: int = Field(200, ge=1, le=1000, description="Maximum number of records, newest first")


class Portal(BaseModel):
    """Portal response schema."""

    id: str = Field(..., description="Portal ID")
    event_id: str = Field(..., description="Associated event ID")
    name: str = Field(..., description="Portal name")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class AttendanceRecord(BaseModel):
    """Attendance record response schema."""

    id: str = Field(..., description="Record ID")
    event_id: str = Field(..., description="Event the scan was recorded for")
    registration_id: Optional[str] = Field(None, description="Registration, if it still exists")
    portal_id: str = Field(..., description="Portal that accepted the scan")
    portal_label: str = Field(..., description="Portal name at scan time")
    display_name: str = Field(..., description="Registrant name at scan time")
    scanned_at: datetime = Field(..., description="Scan time (ISO 8601)")


class ListPortalsResponse(BaseModel):
    """Response schema for listing portals."""

    items: List[Portal] = Field(default_factory=list)


class ListAttendanceRecordsResponse(BaseModel):
    """Response schema for the attendance log."""

    items: List[AttendanceRecord] = Field(default_factory=list)
