"""Auth router issuing operator access tokens."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.exceptions import AuthenticationError
from ..core.security import create_access_token, verify_password
from ..schemas.auth import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse)
async def issue_token(request: TokenRequest) -> JSONResponse:
    """
    Exchange operator credentials for a bearer token.

    The password is checked against the configured PBKDF2 hash.
    """
    valid = (
        bool(settings.operator_password_hash)
        and request.username == settings.operator_username
        and verify_password(request.password, settings.operator_password_hash)
    )

    if not valid:
        logger.warning("Operator login failed", extra={"username": request.username})
        raise AuthenticationError("Invalid username or password")

    token = create_access_token(request.username, roles=["operator"])
    response_data = TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60
    )

    logger.info("Operator token issued", extra={"username": request.username})

    return JSONResponse(status_code=200, content=response_data.model_dump())
