# studio_booking/repositories/factory.py
"""
Repository Factory.

Centralizes repository creation so services never construct
repositories with ad-hoc arguments.
"""

from sqlalchemy.orm import Session

from .availability_repository import AvailabilityRepository
from .discount_code_repository import DiscountCodeRepository
from .loyalty_repository import LoyaltyRepository
from .reschedule_history_repository import RescheduleHistoryRepository
from .reservation_repository import ReservationRepository
from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_reservation_repository(db: Session) -> ReservationRepository:
        return ReservationRepository(db)

    @staticmethod
    def create_reschedule_history_repository(db: Session) -> RescheduleHistoryRepository:
        return RescheduleHistoryRepository(db)

    @staticmethod
    def create_loyalty_repository(db: Session) -> LoyaltyRepository:
        return LoyaltyRepository(db)

    @staticmethod
    def create_discount_code_repository(db: Session) -> DiscountCodeRepository:
        return DiscountCodeRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> UserRepository:
        return UserRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> AvailabilityRepository:
        return AvailabilityRepository(db)
