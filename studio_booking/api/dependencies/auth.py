# studio_booking/api/dependencies/auth.py
"""
Authentication dependencies.

The bearer token only proves *who* the caller is. The admin flag is read from
the users table on every request so a revoked admin loses access immediately.
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlalchemy.orm import Session

from ...auth import decode_access_token
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...principal import Actor
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_guest_token: Optional[str] = Header(None, alias="X-Guest-Token"),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Resolve the caller. Anonymous callers are allowed; services decide what
    they may do.

    Raises:
        HTTPException 401: a bearer token was sent but is invalid or its user is gone
    """
    guest_token = x_guest_token.strip() if x_guest_token and x_guest_token.strip() else None
    if credentials is None:
        return Actor.anonymous(guest_token=guest_token)

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
        logger.info("Rejected session token: %s", exc)
        raise UnauthorizedException(
            "Could not validate credentials", code="INVALID_SESSION"
        ).to_http_exception()

    user = RepositoryFactory.create_user_repository(db).get_by_id(user_id)
    if user is None:
        raise UnauthorizedException(
            "Could not validate credentials", code="INVALID_SESSION"
        ).to_http_exception()

    return Actor(
        user_id=user.id,
        email=user.email,
        is_admin=bool(user.is_admin),
        guest_token=guest_token,
    )


def require_authenticated(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_authenticated:
        raise UnauthorizedException(
            "Sign in to continue", code="AUTHENTICATION_REQUIRED"
        ).to_http_exception()
    return actor


def require_admin(actor: Actor = Depends(require_authenticated)) -> Actor:
    if not actor.is_admin:
        raise ForbiddenException(
            "Administrator access required", code="ADMIN_REQUIRED"
        ).to_http_exception()
    return actor
