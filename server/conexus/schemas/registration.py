"""Registration-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RegistrationStatus(str, Enum):
    """Registration status enumeration."""
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CompanionInput(BaseModel):
    """A companion listed on a registration form."""

    name: str = Field(..., min_length=1, max_length=255, description="Companion full name")
    relation: Optional[str] = Field(None, max_length=64, description="Relation to the owner")
    contact: Optional[str] = Field(None, max_length=255, description="Phone or e-mail")


class SubmitRegistrationRequest(BaseModel):
    """Request schema for submitting a registration."""

    event_id: UUID = Field(..., description="Event to register for")
    owner_name: str = Field(..., min_length=1, max_length=255, description="Owner full name")
    owner_email: str = Field(
        ...,
        max_length=320,
        pattern=r"^[^@\s]+@[^@\s]+$",
        description="Owner e-mail address"
    )
    university: Optional[str] = Field(None, max_length=255, description="Owner affiliation")
    companions: List[CompanionInput] = Field(default_factory=list, max_length=20)


class UpdateRegistrationStatusRequest(BaseModel):
    """Request schema for changing a registration's status."""

    id: UUID = Field(..., description="Registration to update")
    status: RegistrationStatus = Field(..., description="Target status")
    room_id: Optional[UUID] = Field(None, description="Room to assign; only valid with APPROVED")
    note: Optional[str] = Field(None, max_length=2000, description="Operator note")


class AssignRoomRequest(BaseModel):
    """Request schema for moving an approved registration to another room."""

    id: UUID = Field(..., description="Registration to move")
    room_id: UUID = Field(..., description="Destination room")


class BindCardRequest(BaseModel):
    """Request schema for binding an identity card."""

    id: UUID = Field(..., description="Registration to bind")
    card_value: str = Field(..., min_length=1, max_length=128, description="Card identifier read from the tag")


class GetRegistrationRequest(BaseModel):
    """Request schema for getting a registration."""

    id: UUID = Field(..., description="Registration to retrieve")


class DeleteRegistrationRequest(BaseModel):
    """Request schema for deleting a registration."""

    id: UUID = Field(..., description="Registration to delete")


class ListRegistrationsRequest(BaseModel):
    """Request schema for listing registrations."""

    event_id: Optional[UUID] = Field(None, description="Restrict to one event")
    status: Optional[RegistrationStatus] = Field(None, description="Restrict to one status")


class Companion(BaseModel):
    """Companion response schema."""

    name: str
    relation: Optional[str] = None
    contact: Optional[str] = None


class Registration(BaseModel):
    """Registration response schema."""

    id: str = Field(..., description="Unique registration ID")
    event_id: str = Field(..., description="Associated event ID")
    owner_name: str = Field(..., description="Owner full name")
    owner_email: str = Field(..., description="Owner e-mail address")
    university: Optional[str] = Field(None, description="Owner affiliation")
    companions: List[Companion] = Field(default_factory=list)
    participants_count: int = Field(..., ge=1, description="Owner plus companions")
    status: RegistrationStatus = Field(..., description="Approval status")
    room_id: Optional[str] = Field(None, description="Assigned room, if any")
    bound_card: Optional[str] = Field(None, description="Bound identity card, if any")
    admin_note: Optional[str] = Field(None, description="Latest operator note")
    created_at: datetime = Field(..., description="Submission time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last change (ISO 8601)")


class ListRegistrationsResponse(BaseModel):
    """Response schema for listing registrations."""

    items: List[Registration] = Field(default_factory=list)
