"""Attendance router for scans, portals and the attendance log."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import OperatorAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.attendance import (
    AttendanceRecord,
    CreatePortalRequest,
    DeletePortalRequest,
    ListAttendanceRecordsRequest,
    ListAttendanceRecordsResponse,
    ListPortalsRequest,
    ListPortalsResponse,
    Portal,
    ScanRequest,
    ScanResponse,
)
from ..schemas.common import OkResponse
from ..services.attendance_service import AttendanceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/attendance", tags=["attendance"])

DB_DEPENDENCY = Depends(get_db)


def _convert_portal_to_schema(portal_model) -> Portal:
    """Convert portal model to schema."""
    return Portal(
        id=portal_model.id,
        event_id=str(portal_model.event_id),
        name=portal_model.name,
        created_at=portal_model.created_at
    )


def _convert_record_to_schema(record_model) -> AttendanceRecord:
    """Convert attendance record model to schema."""
    return AttendanceRecord(
        id=str(record_model.id),
        event_id=str(record_model.event_id),
        registration_id=str(record_model.registration_id) if record_model.registration_id else None,
        portal_id=record_model.portal_id,
        portal_label=record_model.portal_label,
        display_name=record_model.display_name,
        scanned_at=record_model.scanned_at
    )


@router.post("/scan", response_model=ScanResponse)
async def scan(
    request: ScanRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Record a card or e-mail scan at a portal.

    Every outcome, including duplicates and unknown codes, is a 200 response.
    """
    try:
        result = await AttendanceService(db).record_scan(request.portal_id, request.code)
        response_data = ScanResponse(
            outcome=result.outcome,
            display_name=result.display_name,
            registration_id=str(result.registration_id) if result.registration_id else None,
            portal_label=result.portal_label,
            scanned_at=result.scanned_at
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in scan",
            extra={"portal_id": request.portal_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/portal/create", response_model=Portal, dependencies=[OperatorAuth])
async def create_portal(
    request: CreatePortalRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a scanning portal for an event."""
    try:
        portal = await AttendanceService(db).create_portal(request)
        response_data = _convert_portal_to_schema(portal)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in portal creation",
            extra={"event_id": str(request.event_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/portal/list", response_model=ListPortalsResponse)
async def list_portals(
    request: ListPortalsRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List portals so a scanning device can pick its own."""
    try:
        portals = await AttendanceService(db).list_portals(event_id=request.event_id)
        response_data = ListPortalsResponse(items=[_convert_portal_to_schema(p) for p in portals])
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in portal listing", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/portal/delete", response_model=OkResponse, dependencies=[OperatorAuth])
async def delete_portal(
    request: DeletePortalRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Delete a portal. Attendance records taken there are kept."""
    try:
        await AttendanceService(db).delete_portal(request.id)
        return JSONResponse(status_code=200, content=OkResponse().model_dump())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in portal deletion",
            extra={"portal_id": request.id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/records", response_model=ListAttendanceRecordsResponse, dependencies=[OperatorAuth])
async def list_records(
    request: ListAttendanceRecordsRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Read the attendance log, newest first."""
    try:
        records = await AttendanceService(db).list_records(event_id=request.event_id, limit=request.limit)
        response_data = ListAttendanceRecordsResponse(items=[_convert_record_to_schema(r) for r in records])
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in attendance log listing", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from e
