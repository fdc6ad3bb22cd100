"""Registration router for ledger operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import OperatorAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.common import OkResponse
from ..schemas.registration import (
    AssignRoomRequest,
    BindCardRequest,
    Companion,
    DeleteRegistrationRequest,
    GetRegistrationRequest,
    ListRegistrationsRequest,
    ListRegistrationsResponse,
    Registration,
    SubmitRegistrationRequest,
    UpdateRegistrationStatusRequest,
)
from ..services.registration_service import RegistrationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/registration", tags=["registration"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


def _convert_registration_to_schema(registration_model) -> Registration:
    """Convert registration model to schema."""
    return Registration(
        id=str(registration_model.id),
        event_id=str(registration_model.event_id),
        owner_name=registration_model.owner_name,
        owner_email=registration_model.owner_email,
        university=registration_model.university,
        companions=[
            Companion(name=companion.name, relation=companion.relation, contact=companion.contact)
            for companion in registration_model.companions
        ],
        participants_count=registration_model.participants_count,
        status=registration_model.status,
        room_id=str(registration_model.room_id) if registration_model.room_id else None,
        bound_card=registration_model.bound_card,
        admin_note=registration_model.admin_note,
        created_at=registration_model.created_at,
        updated_at=registration_model.updated_at
    )


def _registration_response(registration_model) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content=_convert_registration_to_schema(registration_model).model_dump(mode="json")
    )


def _internal_error(message: str, e: Exception, **context) -> HTTPException:
    logger.error(message, extra={**context, "error": str(e)}, exc_info=True)
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("/submit", response_model=Registration)
async def submit_registration(
    request: SubmitRegistrationRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Submit a registration for an event.

    The registration starts out awaiting approval.
    """
    try:
        registration = await RegistrationService(db).submit(request)
        return _registration_response(registration)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in registration submit", e, event_id=str(request.event_id)
        ) from e


@router.post("/status", response_model=Registration, dependencies=[OperatorAuth])
async def update_registration_status(
    request: UpdateRegistrationStatusRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Approve, reject or reset a registration.

    Approving with a room only succeeds if the room has a free bed.
    """
    try:
        registration = await RegistrationService(db).set_status(
            registration_id=request.id,
            new_status=request.status.value,
            room_id=request.room_id,
            note=request.note
        )
        return _registration_response(registration)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in registration status update", e,
            registration_id=str(request.id), status=request.status.value
        ) from e


@router.post("/assign-room", response_model=Registration, dependencies=[OperatorAuth])
async def assign_room(
    request: AssignRoomRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Move an approved registration to another room."""
    try:
        registration = await RegistrationService(db).assign_room(request.id, request.room_id)
        return _registration_response(registration)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in room assignment", e,
            registration_id=str(request.id), room_id=str(request.room_id)
        ) from e


@router.post("/bind-card", response_model=Registration, dependencies=[OperatorAuth])
async def bind_card(
    request: BindCardRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Bind an identity card to a registration.

    Fails with CARD_CONFLICT, naming the holder, if the card is in use.
    """
    try:
        registration = await RegistrationService(db).bind_card(request.id, request.card_value)
        return _registration_response(registration)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in card binding", e, registration_id=str(request.id)
        ) from e


@router.post("/get", response_model=Registration, dependencies=[OperatorAuth])
async def get_registration(
    request: GetRegistrationRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a registration by ID."""
    try:
        registration = await RegistrationService(db).get_registration_by_id_or_raise(request.id)
        return _registration_response(registration)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in registration retrieval", e, registration_id=str(request.id)
        ) from e


@router.post("/list", response_model=ListRegistrationsResponse, dependencies=[OperatorAuth])
async def list_registrations(
    request: ListRegistrationsRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List registrations, optionally by event and status."""
    try:
        registrations = await RegistrationService(db).list_registrations(
            event_id=request.event_id,
            status=request.status.value if request.status else None
        )
        response_data = ListRegistrationsResponse(
            items=[_convert_registration_to_schema(r) for r in registrations]
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error in registration listing", e) from e


@router.post("/delete", response_model=OkResponse, dependencies=[OperatorAuth])
async def delete_registration(
    request: DeleteRegistrationRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Delete a registration, releasing its room seat and card."""
    try:
        await RegistrationService(db).delete(request.id)
        return JSONResponse(status_code=200, content=OkResponse().model_dump())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in registration deletion", e, registration_id=str(request.id)
        ) from e
