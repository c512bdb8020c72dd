"""
Database models for the studio booking engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .availability import AvailabilityDay
from .discount_code import DiscountCode, DiscountCodeUse
from .loyalty import LoyaltyPointsEntry
from .reschedule_history import RescheduleHistoryEntry
from .reservation import Reservation
from .user import User

__all__ = [
    "AvailabilityDay",
    "DiscountCode",
    "DiscountCodeUse",
    "LoyaltyPointsEntry",
    "RescheduleHistoryEntry",
    "Reservation",
    "User",
]
