"""Event router for event management."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import OperatorAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.common import OkResponse
from ..schemas.event import CreateEventRequest, DeleteEventRequest, Event, ListEventsResponse
from ..services.event_service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/event", tags=["event"])

DB_DEPENDENCY = Depends(get_db)


def _convert_event_to_schema(event_model) -> Event:
    """Convert event model to schema."""
    return Event(
        id=str(event_model.id),
        title=event_model.title,
        location=event_model.location,
        starts_at=event_model.starts_at,
        ends_at=event_model.ends_at,
        created_at=event_model.created_at
    )


@router.post("/create", response_model=Event, dependencies=[OperatorAuth])
async def create_event(
    request: CreateEventRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a new event."""
    try:
        event = await EventService(db).create_event(request)
        response_data = _convert_event_to_schema(event)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in event creation",
            extra={"title": request.title, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/list", response_model=ListEventsResponse)
async def list_events(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List events open for registration."""
    try:
        events = await EventService(db).list_events()
        response_data = ListEventsResponse(items=[_convert_event_to_schema(e) for e in events])
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in event listing", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/delete", response_model=OkResponse, dependencies=[OperatorAuth])
async def delete_event(
    request: DeleteEventRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Delete an event with its registrations and portals."""
    try:
        await EventService(db).delete_event(request.id)
        return JSONResponse(status_code=200, content=OkResponse().model_dump())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in event deletion",
            extra={"event_id": str(request.id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
