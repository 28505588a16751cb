"""
Authentication schemas.
"""
from datetime import datetime

from pydantic import BaseModel


class TokenPayload(BaseModel):
    """Schema for JWT token payload."""

    sub: str  # user id
    exp: datetime
    iat: datetime
    type: str = "access"


class AuthenticatedUser(BaseModel):
    """The caller, as identified by a verified access token."""

    id: str
