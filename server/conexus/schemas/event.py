"""Event-related Pydantic schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class CreateEventRequest(BaseModel):
    """Request schema for creating an event."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    location: Optional[str] = Field(None, max_length=255, description="Venue")
    starts_at: Optional[datetime] = Field(None, description="Start time (ISO 8601)")
    ends_at: Optional[datetime] = Field(None, description="End time (ISO 8601)")

    @model_validator(mode="after")
    def check_dates(self) -> "CreateEventRequest":
        if self.starts_at and self.ends_at and self.ends_at < self.starts_at:
            raise ValueError("ends_at must not be before starts_at")
        return self


class DeleteEventRequest(BaseModel):
    """Request schema for deleting an event."""

    id: UUID = Field(..., description="Event to delete")


class Event(BaseModel):
    """Event response schema."""

    id: str = Field(..., description="Unique event ID")
    title: str = Field(..., description="Event title")
    location: Optional[str] = Field(None, description="Venue")
    starts_at: Optional[datetime] = Field(None, description="Start time (ISO 8601)")
    ends_at: Optional[datetime] = Field(None, description="End time (ISO 8601)")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class ListEventsResponse(BaseModel):
    """Response schema for listing events."""

    items: List[Event] = Field(default_factory=list)
