"""Accommodation-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PlaceKind(str, Enum):
    """Kind of accommodation."""
    DORM = "DORM"
    HOTEL = "HOTEL"


class CreatePlaceRequest(BaseModel):
    """Request schema for creating a dorm or hotel."""

    name: str = Field(..., min_length=1, max_length=255, description="Place name")
    kind: PlaceKind = Field(PlaceKind.DORM, description="Dorm or hotel")


class DeletePlaceRequest(BaseModel):
    """Request schema for deleting a place and all its rooms."""

    id: UUID = Field(..., description="Place to delete")


class CreateRoomRequest(BaseModel):
    """Request schema for creating a room."""

    place_id: UUID = Field(..., description="Place the room belongs to")
    name: str = Field(..., min_length=1, max_length=128, description="Room name or number")
    beds: int = Field(..., ge=1, le=100, description="Number of beds")


class DeleteRoomRequest(BaseModel):
    """Request schema for deleting a room."""

    id: UUID = Field(..., description="Room to delete")


class ListRoomsRequest(BaseModel):
    """Request schema for listing rooms."""

    place_id: Optional[UUID] = Field(None, description="Restrict to one place")


class Place(BaseModel):
    """Place response schema."""

    id: str = Field(..., description="Unique place ID")
    name: str = Field(..., description="Place name")
    kind: PlaceKind = Field(..., description="Dorm or hotel")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class Room(BaseModel):
    """Room response schema with derived occupancy."""

    id: str = Field(..., description="Unique room ID")
    place_id: str = Field(..., description="Owning place ID")
    name: str = Field(..., description="Room name or number")
    beds: int = Field(..., ge=1, description="Number of beds")
    occupancy: int = Field(..., ge=0, description="Approved registrations assigned to the room")
    is_full: bool = Field(..., description="Whether occupancy has reached the bed count")


class ListPlacesResponse(BaseModel):
    """Response schema for listing places."""

    items: List[Place] = Field(default_factory=list)


class ListRoomsResponse(BaseModel):
    """Response schema for listing rooms."""

    items: List[Room] = Field(default_factory=list)
