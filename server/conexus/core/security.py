"""Password hashing and access-token helpers for the operator boundary."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from .config import settings

PASSWORD_METHOD = "pbkdf2:sha256"
TOKEN_ALGORITHM = "HS256"


def hash_password(password: str, method: str = PASSWORD_METHOD) -> str:
    """
    Hash a password for storage.

    The result is werkzeug's ``pbkdf2:sha256:<iterations>$<salt>$<hash>``
    string, so the iteration count travels with the hash.
    """
    return generate_password_hash(password, method=method)


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a stored hash in constant time."""
    try:
        return check_password_hash(encoded, password)
    except ValueError:
        # Unknown hash method or iteration count
        return False


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
    """Create a signed JWT for an authenticated operator."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload: Dict[str, Any] = {"sub": subject, "exp": expire, **claims}
    return jwt.encode(payload, settings.jwt_secret, algorithm=TOKEN_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify an access token.

    Raises:
        jwt.PyJWTError: If the token is malformed, forged or expired
    """
    return jwt.decode(token, settings.jwt_secret, algorithms=[TOKEN_ALGORITHM])
