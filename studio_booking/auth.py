"""Session token helpers (bearer JWT, ``sub`` = user id)."""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

import jwt

from .core.config import settings

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "session"
DEFAULT_SESSION_MINUTES = 60 * 24 * 7


def _secret_value() -> str:
    return settings.secret_key.get_secret_value()


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a session JWT for a user.

    Args:
        user_id: Subject of the token
        expires_delta: Optional expiration time delta

    Returns:
        str: The encoded JWT token
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=DEFAULT_SESSION_MINUTES)
    )
    to_encode = {"sub": str(user_id), "typ": SESSION_TOKEN_TYPE, "exp": expire}
    return cast(str, jwt.encode(to_encode, _secret_value(), algorithm=settings.algorithm))


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode a session JWT. Raises ``jwt.PyJWTError`` on any problem."""
    payload = cast(
        Dict[str, Any],
        jwt.decode(
            token,
            _secret_value(),
            algorithms=[settings.algorithm],
            options={"require": ["sub", "exp"]},
        ),
    )
    if payload.get("typ") != SESSION_TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not a session token")
    return payload
