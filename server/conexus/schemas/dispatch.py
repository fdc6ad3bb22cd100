"""Notification dispatch Pydantic schemas."""

from enum import Enum
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class DispatchState(str, Enum):
    """Lifecycle of a dispatch run."""
    IDLE = "IDLE"
    SENDING = "SENDING"
    COMPLETE = "COMPLETE"


class DispatchBatchRequest(BaseModel):
    """Request schema for starting a notification batch."""

    target_ids: List[UUID] = Field(..., max_length=5000, description="Registrations to notify")


class GetRunStatusRequest(BaseModel):
    """Request schema for polling a dispatch run."""

    run_id: str = Field(..., min_length=1, description="Run handle returned by dispatch")


class DispatchRunStatus(BaseModel):
    """Snapshot of a dispatch run."""

    run_id: str = Field(..., description="Run handle")
    state: DispatchState = Field(..., description="Run state")
    processed: int = Field(..., ge=0, description="Targets attempted so far")
    total: int = Field(..., ge=0, description="Targets in the batch")
    errors: int = Field(..., ge=0, description="Failed attempts so far")
