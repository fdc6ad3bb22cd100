"""Operator authentication schemas."""

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """Request schema for exchanging operator credentials for a token."""

    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1, max_length=1024)


class TokenResponse(BaseModel):
    """Access token response schema."""

    access_token: str = Field(..., description="Signed bearer token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Token lifetime in seconds")
