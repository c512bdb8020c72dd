"""Loyalty schemas."""

from typing import Optional

from .base import StandardizedModel


class LoyaltyBalanceResponse(StandardizedModel):
    user_id: int
    points: int
    level: str
    confirmed_reservations: Optional[int] = None
