"""Unit tests for operator credentials and tokens."""

from datetime import timedelta

import jwt
import pytest

from conexus.core.dependencies import get_current_operator
from conexus.core.exceptions import AuthenticationError
from conexus.core.security import create_access_token, decode_access_token, hash_password, verify_password


FAST_METHOD = "pbkdf2:sha256:1000"


def test_password_hash_roundtrip():
    """A hash verifies its own password and nothing else."""
    encoded = hash_password("correct horse", method=FAST_METHOD)

    assert encoded.startswith("pbkdf2:sha256:1000$")
    assert verify_password("correct horse", encoded)
    assert not verify_password("wrong horse", encoded)


def test_default_hash_method():
    """Test that stored hashes default to PBKDF2-SHA256."""
    encoded = hash_password("correct horse")

    assert encoded.startswith("pbkdf2:sha256:")
    assert verify_password("correct horse", encoded)


def test_password_hashes_are_salted():
    """Test that the same password hashes differently each time."""
    assert hash_password("secret", method=FAST_METHOD) != hash_password("secret", method=FAST_METHOD)


@pytest.mark.parametrize(
    "encoded",
    ["", "plain-text", "md5$salt$hash", "pbkdf2:sha256:many$salt$hash", "pbkdf2_sha256$1000$salt$hash"],
)
def test_verify_rejects_malformed_hash(encoded):
    """Test that unusable stored hashes never verify."""
    assert not verify_password("anything", encoded)


def test_access_token_claims():
    """Test that tokens carry the subject and extra claims."""
    token = create_access_token("admin", roles=["operator"])

    payload = decode_access_token(token)

    assert payload["sub"] == "admin"
    assert payload["roles"] == ["operator"]
    assert "exp" in payload


def test_expired_token_is_rejected():
    """Test decoding a token past its expiry."""
    token = create_access_token("admin", expires_delta=timedelta(seconds=-1))

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token)


@pytest.mark.asyncio
async def test_operator_dependency_accepts_bearer_token():
    """Test the auth dependency with a valid token."""
    token = create_access_token("admin", roles=["operator"])

    operator = await get_current_operator(authorization=f"Bearer {token}")

    assert operator == {"username": "admin", "roles": ["operator"]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header",
    [None, "", "Bearer", "Basic abc", "Bearer not-a-jwt", "Bearer a b"],
)
async def test_operator_dependency_rejects_bad_headers(header):
    """Test the auth dependency with missing or malformed credentials."""
    with pytest.raises(AuthenticationError) as exc_info:
        await get_current_operator(authorization=header)

    assert exc_info.value.status_code == 401
    assert exc_info.value.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_operator_dependency_rejects_expired_token():
    """Test the auth dependency with an expired token."""
    token = create_access_token("admin", expires_delta=timedelta(minutes=-5))

    with pytest.raises(AuthenticationError) as exc_info:
        await get_current_operator(authorization=f"Bearer {token}")

    assert "expired" in exc_info.value.problem_details["detail"]
