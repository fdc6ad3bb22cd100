"""FastAPI dependencies for operator authentication."""

import logging
from typing import Optional

from fastapi import Depends, Header
from jwt import ExpiredSignatureError, PyJWTError

from .exceptions import AuthenticationError
from .security import decode_access_token

logger = logging.getLogger(__name__)


async def get_current_operator(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> dict:
    """
    Authentication dependency that validates operator Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        dict: Operator information from the validated token

    Raises:
        AuthenticationError: If the token is invalid, expired or missing
    """
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except PyJWTError as e:
        logger.info("Rejected operator token", extra={"error": str(e)})
        raise AuthenticationError("Token validation failed")

    operator = payload.get("sub")
    if operator is None:
        raise AuthenticationError("Invalid token payload")

    return {
        "username": operator,
        "roles": payload.get("roles", []),
    }


OperatorAuth = Depends(get_current_operator)
