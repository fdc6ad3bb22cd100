"""Accommodation router for places and rooms."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import OperatorAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.accommodation import (
    CreatePlaceRequest,
    CreateRoomRequest,
    DeletePlaceRequest,
    DeleteRoomRequest,
    ListPlacesResponse,
    ListRoomsRequest,
    ListRoomsResponse,
    Place,
    Room,
)
from ..schemas.common import OkResponse
from ..services.accommodation_service import AccommodationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/accommodation", tags=["accommodation"], dependencies=[OperatorAuth])

DB_DEPENDENCY = Depends(get_db)


def _convert_place_to_schema(place_model) -> Place:
    """Convert place model to schema."""
    return Place(
        id=str(place_model.id),
        name=place_model.name,
        kind=place_model.kind,
        created_at=place_model.created_at
    )


def _convert_room_to_schema(room_model, occupancy: int) -> Room:
    """Convert room model and its occupancy to schema."""
    return Room(
        id=str(room_model.id),
        place_id=str(room_model.place_id),
        name=room_model.name,
        beds=room_model.beds,
        occupancy=occupancy,
        is_full=occupancy >= room_model.beds
    )


@router.post("/place/create", response_model=Place)
async def create_place(
    request: CreatePlaceRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a dorm or hotel."""
    try:
        place = await AccommodationService(db).create_place(request)
        response_data = _convert_place_to_schema(place)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in place creation",
            extra={"place_name": request.name, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/place/list", response_model=ListPlacesResponse)
async def list_places(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List all places."""
    try:
        places = await AccommodationService(db).list_places()
        response_data = ListPlacesResponse(items=[_convert_place_to_schema(p) for p in places])
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in place listing", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/place/delete", response_model=OkResponse)
async def delete_place(
    request: DeletePlaceRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Delete a place with all of its rooms.

    Registrations in those rooms keep their status and lose their room.
    """
    try:
        await AccommodationService(db).delete_place(request.id)
        return JSONResponse(status_code=200, content=OkResponse().model_dump())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in place deletion",
            extra={"place_id": str(request.id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/room/create", response_model=Room)
async def create_room(
    request: CreateRoomRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a room in a place."""
    try:
        room = await AccommodationService(db).create_room(request)
        response_data = _convert_room_to_schema(room, occupancy=0)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in room creation",
            extra={"place_id": str(request.place_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/room/list", response_model=ListRoomsResponse)
async def list_rooms(
    request: ListRoomsRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List rooms with their current occupancy."""
    try:
        rooms = await AccommodationService(db).list_rooms(place_id=request.place_id)
        response_data = ListRoomsResponse(
            items=[_convert_room_to_schema(room, occupancy) for room, occupancy in rooms]
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in room listing", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/room/delete", response_model=OkResponse)
async def delete_room(
    request: DeleteRoomRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Delete a room.

    Registrations in the room keep their status and lose their room.
    """
    try:
        await AccommodationService(db).delete_room(request.id)
        return JSONResponse(status_code=200, content=OkResponse().model_dump())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in room deletion",
            extra={"room_id": str(request.id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
