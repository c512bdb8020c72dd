# studio_booking/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Collaborators that
tests replace (calendar, payment processor, notifier) each have their own
provider so they can be overridden in one place.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.business_calendar import BusinessCalendar, get_business_calendar
from ...services.access_guard import AccessGuard
from ...services.cancellation_service import CancellationService
from ...services.discount_code_service import DiscountCodeService
from ...services.guest_token_service import GuestTokenService
from ...services.loyalty_ledger_service import LoyaltyLedgerService
from ...services.notification_service import NotificationService, get_notification_service
from ...services.payment_processor import PaymentProcessor, get_payment_processor
from ...services.reschedule_service import RescheduleService
from ...services.reservation_service import ReservationService
from .database import get_db


def get_calendar() -> BusinessCalendar:
    return get_business_calendar()


def get_processor() -> PaymentProcessor:
    return get_payment_processor()


def get_notifications() -> NotificationService:
    return get_notification_service()


def get_guest_token_service() -> GuestTokenService:
    return GuestTokenService()


def get_reservation_service(
    db: Session = Depends(get_db),
    calendar: BusinessCalendar = Depends(get_calendar),
    token_service: GuestTokenService = Depends(get_guest_token_service),
    notifications: NotificationService = Depends(get_notifications),
) -> ReservationService:
    """Get ReservationService instance with proper dependencies."""
    return ReservationService(
        db,
        calendar=calendar,
        token_service=token_service,
        notification_service=notifications,
    )


def get_reschedule_service(
    db: Session = Depends(get_db),
    calendar: BusinessCalendar = Depends(get_calendar),
    token_service: GuestTokenService = Depends(get_guest_token_service),
    processor: PaymentProcessor = Depends(get_processor),
    notifications: NotificationService = Depends(get_notifications),
) -> RescheduleService:
    return RescheduleService(
        db,
        calendar=calendar,
        access_guard=AccessGuard(token_service),
        payment_processor=processor,
        notification_service=notifications,
    )


def get_cancellation_service(
    db: Session = Depends(get_db),
    calendar: BusinessCalendar = Depends(get_calendar),
    token_service: GuestTokenService = Depends(get_guest_token_service),
    processor: PaymentProcessor = Depends(get_processor),
    notifications: NotificationService = Depends(get_notifications),
) -> CancellationService:
    return CancellationService(
        db,
        calendar=calendar,
        access_guard=AccessGuard(token_service),
        payment_processor=processor,
        notification_service=notifications,
    )


def get_loyalty_ledger_service(
    db: Session = Depends(get_db),
    calendar: BusinessCalendar = Depends(get_calendar),
) -> LoyaltyLedgerService:
    return LoyaltyLedgerService(db, calendar)


def get_discount_code_service(
    db: Session = Depends(get_db),
    calendar: BusinessCalendar = Depends(get_calendar),
) -> DiscountCodeService:
    return DiscountCodeService(db, calendar)
