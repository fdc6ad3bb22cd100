"""Dispatch router for batch certificate notifications."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import OperatorAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.dispatch import DispatchBatchRequest, DispatchRunStatus, GetRunStatusRequest
from ..services.dispatch_service import (
    DispatchRegistry,
    DispatchRunSnapshot,
    DispatchService,
    NotificationSender,
    get_dispatch_registry,
    get_notification_sender,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/dispatch", tags=["dispatch"], dependencies=[OperatorAuth])

DB_DEPENDENCY = Depends(get_db)
REGISTRY_DEPENDENCY = Depends(get_dispatch_registry)
SENDER_DEPENDENCY = Depends(get_notification_sender)


def _convert_snapshot_to_schema(snapshot: DispatchRunSnapshot) -> DispatchRunStatus:
    """Convert run snapshot to schema."""
    return DispatchRunStatus(
        run_id=snapshot.run_id,
        state=snapshot.state,
        processed=snapshot.processed,
        total=snapshot.total,
        errors=snapshot.errors
    )


@router.post("/batch", response_model=DispatchRunStatus)
async def dispatch_batch(
    request: DispatchBatchRequest,
    db: AsyncSession = DB_DEPENDENCY,
    registry: DispatchRegistry = REGISTRY_DEPENDENCY,
    sender: NotificationSender = SENDER_DEPENDENCY
) -> JSONResponse:
    """
    Start sending notifications to a batch of registrations.

    Returns the run handle at once; poll /v1/dispatch/status for progress.
    """
    try:
        service = DispatchService(db, registry=registry, sender=sender)
        run = await service.dispatch_batch(request.target_ids)
        response_data = _convert_snapshot_to_schema(run.snapshot())
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in dispatch batch",
            extra={"targets": len(request.target_ids), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/status", response_model=DispatchRunStatus)
async def get_run_status(
    request: GetRunStatusRequest,
    db: AsyncSession = DB_DEPENDENCY,
    registry: DispatchRegistry = REGISTRY_DEPENDENCY,
    sender: NotificationSender = SENDER_DEPENDENCY
) -> JSONResponse:
    """Poll a dispatch run."""
    try:
        snapshot = DispatchService(db, registry=registry, sender=sender).get_run_status(request.run_id)
        response_data = _convert_snapshot_to_schema(snapshot)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in dispatch status",
            extra={"run_id": request.run_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
