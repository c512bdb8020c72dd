"""
Guest token service.

A guest token is a signed, stateless credential binding one email to one
reservation id. Possession is authorization to manage that one reservation.
Nothing is stored; the reservation leaving ``confirmed`` is the real expiry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, cast

import jwt

from ..core.config import settings
from ..core.exceptions import GuestTokenError

GUEST_TOKEN_TYPE = "guest_reservation"


@dataclass(frozen=True)
class GuestTokenClaims:
    email: str
    reservation_id: int


class GuestTokenService:
    """Issues and verifies guest tokens with PyJWT (HS256)."""

    def __init__(
        self,
        secret: Optional[str] = None,
        ttl_days: Optional[int] = None,
        app_url: Optional[str] = None,
    ) -> None:
        self._secret = secret or settings.guest_token_signing_key
        if ttl_days is None:
            ttl_days = settings.guest_token_ttl_days
        self._ttl = timedelta(days=ttl_days)
        self._app_url = (app_url or settings.app_url).rstrip("/")

    def issue(self, email: str, reservation_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "typ": GUEST_TOKEN_TYPE,
            "email": email.strip().lower(),
            "reservation_id": int(reservation_id),
            "iat": now,
            "exp": now + self._ttl,
        }
        return cast(str, jwt.encode(payload, self._secret, algorithm=settings.algorithm))

    def verify(self, token: str) -> GuestTokenClaims:
        """Return the embedded claims or raise GuestTokenError."""
        if not token:
            raise GuestTokenError("Guest token is required")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[settings.algorithm],
                options={"require": ["exp", "email", "reservation_id"]},
            )
        except jwt.ExpiredSignatureError:
            raise GuestTokenError("Guest token has expired")
        except jwt.PyJWTError:
            raise GuestTokenError("Guest token is invalid")

        if payload.get("typ") != GUEST_TOKEN_TYPE:
            raise GuestTokenError("Guest token is invalid")
        try:
            reservation_id = int(payload["reservation_id"])
        except (TypeError, ValueError):
            raise GuestTokenError("Guest token is invalid")
        email = str(payload["email"]).strip().lower()
        if not email:
            raise GuestTokenError("Guest token is invalid")
        return GuestTokenClaims(email=email, reservation_id=reservation_id)

    def manage_url(self, token: str) -> str:
        return f"{self._app_url}/reservas/{token}"
