# studio_booking/services/access_guard.py
"""
Access guard for reservation-scoped operations.

Resolves exactly one of owner, guest or admin for a caller against one
reservation, or refuses.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import AccessLevel
from ..core.exceptions import GuestTokenError, UnauthorizedException
from ..models.reservation import Reservation
from ..principal import Actor
from .guest_token_service import GuestTokenService

logger = logging.getLogger(__name__)


class AccessGuard:
    def __init__(self, token_service: Optional[GuestTokenService] = None) -> None:
        self.token_service = token_service or GuestTokenService()

    def resolve(self, reservation: Reservation, actor: Actor) -> AccessLevel:
        """
        Return how ``actor`` may act on ``reservation``.

        Admins win over ownership so the lead-time and reschedule-limit
        exemptions apply even to an admin's own reservation.

        Raises:
            UnauthorizedException: no session or token grants access
        """
        if actor.is_admin:
            return AccessLevel.ADMIN

        if actor.user_id is not None and reservation.user_id == actor.user_id:
            return AccessLevel.OWNER

        if actor.guest_token:
            if self._guest_token_matches(reservation, actor.guest_token):
                return AccessLevel.GUEST
            logger.warning(
                "Guest token rejected for reservation",
                extra={"reservation_id": reservation.id},
            )

        raise UnauthorizedException(
            "You do not have permission to manage this reservation",
            code="RESERVATION_ACCESS_DENIED",
            details={"reservation_id": reservation.id},
        )

    def _guest_token_matches(self, reservation: Reservation, token: str) -> bool:
        try:
            claims = self.token_service.verify(token)
        except GuestTokenError:
            return False
        return (
            claims.reservation_id == reservation.id
            and claims.email == (reservation.email or "").strip().lower()
        )
