"""
Authentication helpers for bearer tokens.

Sessions are issued by the external identity provider; this service only
creates (for tooling and tests) and verifies JWT access tokens. The ``sub``
claim carries the opaque user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError
import structlog

from traderoom.core.config import settings
from traderoom.schemas.auth import TokenPayload

logger = structlog.get_logger()


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.jwt_access_token_expire_minutes)

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Decode and validate a JWT access token.

    Validates:
    - Token signature
    - Token expiration
    - Token type (must be "access")
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        token_data = TokenPayload(**payload)
    except JWTError as e:
        logger.warning("access_token_rejected", error=str(e))
        return None
    except ValidationError as e:
        logger.warning("access_token_malformed", error=str(e))
        return None

    if token_data.type != "access":
        logger.warning("access_token_wrong_type", token_type=token_data.type)
        return None

    return token_data
