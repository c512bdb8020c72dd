# studio_booking/services/reservation_service.py
"""
Reservation Service for the studio booking engine.

Handles booking creation (customer checkout and admin manual bookings),
lookups for owners, admins and guests, and day availability.

Creation order matters:
1. Everything that can reject the booking runs before the insert
   (availability, loyalty balance, discount code).
2. The insert itself is backstopped by the confirmed-slot unique index.
3. Loyalty consumption runs after the insert; a race there leaves the
   reservation in place and surfaces a LoyaltyConsumptionError.
4. The remaining follow-ups are best-effort and never fail the booking.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.business_calendar import BusinessCalendar
from ..core.enums import MANUAL_PAYMENT_METHODS, LoyaltyLevel, ReservationStatus
from ..core.exceptions import (
    ForbiddenException,
    InsufficientPointsException,
    LoyaltyConsumptionError,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import is_slot_conflict
from ..schemas.reservation import AdminReservationCreate, ReservationCreate
from .access_guard import AccessGuard
from .base import BaseService
from .discount_code_service import DiscountCodeService
from .guest_token_service import GuestTokenService
from .loyalty_ledger_service import LoyaltyLedgerService
from .notification_service import NotificationService
from .pricing_service import PricingService
from .slot_availability_service import SlotAvailabilityService, session_end_time

logger = logging.getLogger(__name__)


@dataclass
class ReservationCreationResult:
    reservation: Reservation
    guest_token: Optional[str] = None
    guest_reservation_url: Optional[str] = None
    loyalty_level_changed: bool = False
    new_loyalty_level: Optional[LoyaltyLevel] = None
    points_granted: int = 0


class ReservationService(BaseService):
    """
    Service layer for creating and reading reservations.

    Reschedules and cancellations live in their own services; this one only
    ever inserts reservation rows.
    """

    def __init__(
        self,
        db: Session,
        calendar: Optional[BusinessCalendar] = None,
        token_service: Optional[GuestTokenService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.calendar = calendar or BusinessCalendar()
        self.token_service = token_service or GuestTokenService()
        self.notification_service = notification_service or NotificationService()
        self.access_guard = AccessGuard(self.token_service)

        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

        self.slot_service = SlotAvailabilityService(db)
        self.pricing_service = PricingService(db, self.calendar)
        self.ledger = LoyaltyLedgerService(db, self.calendar)
        self.discount_service = DiscountCodeService(db, self.calendar)

    # Creation

    @BaseService.measure_operation("create_reservation")
    def create_reservation(self, data: ReservationCreate, actor: Actor) -> ReservationCreationResult:
        """
        Book a slot that the customer has already paid for.

        Args:
            data: Validated checkout payload
            actor: Caller; a session makes the booking authenticated

        Returns:
            ReservationCreationResult with the new row and guest credentials

        Raises:
            ValidationException: Past date
            SlotUnavailableException: Slot closed or taken
            InsufficientPointsException: Not enough loyalty points
            BusinessRuleException / NotFoundException: Discount code rejected
            LoyaltyConsumptionError: Points spent concurrently; booking stands
        """
        email = data.email.strip().lower()
        self._reject_past(data.date)

        owner_id = self._resolve_owner(actor, email)
        loyalty_points = data.loyalty_points_used
        loyalty_discount = data.loyalty_discount
        # Points belong to the session user only, never to an email match
        if not actor.is_authenticated:
            loyalty_points = 0
            loyalty_discount = Decimal("0")

        # All rejections happen before the insert
        self.slot_service.ensure_available(data.date, data.start_time)
        if loyalty_points > 0:
            self.ledger.ensure_sufficient(owner_id, loyalty_points)
        if data.discount_code:
            self.discount_service.validate(data.discount_code, email)

        previous_count = (
            self.reservation_repository.count_confirmed_for_user(owner_id) if owner_id else 0
        )

        reservation = self._insert(
            user_id=owner_id,
            email=email,
            name=data.name,
            phone=data.phone,
            date=data.date,
            start_time=data.start_time,
            end_time=session_end_time(data.start_time),
            price=data.price,
            original_price=data.original_price,
            discount_amount=data.discount_amount,
            last_minute_discount=data.last_minute_discount,
            loyalty_discount=loyalty_discount,
            loyalty_points_used=loyalty_points,
            credits_used=data.credits_used,
            referral_discount=data.referral_discount,
            discount_code=data.discount_code,
            discount_code_discount=data.discount_code_discount,
            payment_id=data.payment_id,
            payment_method=data.payment_method,
            status=ReservationStatus.CONFIRMED.value,
        )

        if loyalty_points > 0:
            self._consume_points(owner_id, loyalty_points, reservation)

        result = ReservationCreationResult(reservation=reservation)
        self._run_follow_ups(result, data, actor, owner_id, previous_count)

        self.notification_service.reservation_confirmed(
            self._notification_details(reservation, result.guest_reservation_url)
        )
        self.log_operation(
            "reservation_created",
            reservation_id=reservation.id,
            user_id=owner_id,
            slot_date=reservation.date.isoformat(),
        )
        return result

    @BaseService.measure_operation("create_admin_reservation")
    def create_admin_reservation(
        self, data: AdminReservationCreate, actor: Actor
    ) -> ReservationCreationResult:
        """Manual booking taken by staff, paid in cash or by transfer."""
        if not actor.is_admin:
            raise ForbiddenException("Only administrators can create manual reservations")
        if data.payment_method not in {method.value for method in MANUAL_PAYMENT_METHODS}:
            raise ValidationException("Manual reservations must be paid in cash or by transfer")

        email = data.email.strip().lower()
        self._reject_past(data.date)
        self.slot_service.ensure_available(data.date, data.start_time)

        linked_user = self.user_repository.get_by_email(email)
        reservation = self._insert(
            user_id=linked_user.id if linked_user else None,
            email=email,
            name=data.name,
            phone=data.phone,
            date=data.date,
            start_time=data.start_time,
            end_time=session_end_time(data.start_time),
            price=data.price,
            original_price=data.price,
            payment_id=None,
            payment_method=data.payment_method,
            status=ReservationStatus.CONFIRMED.value,
            created_by_user_id=actor.user_id,
        )

        result = ReservationCreationResult(reservation=reservation)
        if data.send_email:
            result.guest_token = self.token_service.issue(email, reservation.id)
            result.guest_reservation_url = self.token_service.manage_url(result.guest_token)
            self.notification_service.reservation_confirmed(
                self._notification_details(reservation, result.guest_reservation_url)
            )

        self.log_operation(
            "admin_reservation_created",
            reservation_id=reservation.id,
            admin_id=actor.user_id,
            payment_method=data.payment_method,
        )
        return result

    def _insert(self, **values: Any) -> Reservation:
        with self.transaction():
            try:
                return self.reservation_repository.create(**values)
            except IntegrityError as exc:
                if not is_slot_conflict(exc):
                    raise
                prometheus_metrics.inc_slot_conflict("unique_index")
                raise SlotUnavailableException(
                    details={
                        "date": values["date"].isoformat(),
                        "start_time": values["start_time"].strftime("%H:%M"),
                    }
                ) from exc

    def _consume_points(self, owner_id: int, points: int, reservation: Reservation) -> None:
        """
        Spend points for a reservation that already exists.

        A balance drained between the pre-insert check and this re-read is a
        race like any other: the booking stands with nothing consumed.
        """
        try:
            self.ledger.reserve_and_consume(owner_id, points, reservation.id)
        except InsufficientPointsException as exc:
            with self.transaction():
                self.reservation_repository.set_loyalty_points_used(reservation.id, 0)
            self.reservation_repository.refresh(reservation)
            prometheus_metrics.inc_loyalty_race()
            self.logger.error(
                "Loyalty balance drained after insert; reservation kept without points",
                extra={
                    "reservation_id": reservation.id,
                    "user_id": owner_id,
                    "requested_points": points,
                    "available_points": exc.details.get("available_points"),
                },
            )
            raise LoyaltyConsumptionError(
                reservation_id=reservation.id,
                requested_points=points,
                consumed_points=0,
            ) from exc

    def _resolve_owner(self, actor: Actor, email: str) -> Optional[int]:
        if actor.user_id is not None:
            return actor.user_id
        registered = self.user_repository.get_by_email(email)
        return registered.id if registered else None

    def _reject_past(self, slot_date: date) -> None:
        if self.calendar.is_past(slot_date):
            raise ValidationException(
                "Cannot book a date in the past",
                details={"date": slot_date.isoformat(), "today": self.calendar.today().isoformat()},
            )

    def _run_follow_ups(
        self,
        result: ReservationCreationResult,
        data: ReservationCreate,
        actor: Actor,
        owner_id: Optional[int],
        previous_count: int,
    ) -> None:
        reservation = result.reservation

        if actor.is_authenticated and owner_id is not None and data.price > 0:
            points = self.ledger.points_for_price(data.price)
            try:
                if self.ledger.grant(owner_id, points, reservation.id) is not None:
                    result.points_granted = points
            except Exception:
                self.logger.error(
                    "Failed to grant loyalty points",
                    extra={"reservation_id": reservation.id, "user_id": owner_id},
                    exc_info=True,
                )

        if actor.is_authenticated and owner_id is not None:
            try:
                with self.transaction():
                    self.user_repository.fill_missing_profile(
                        owner_id, name=data.name, phone=data.phone
                    )
            except Exception:
                self.logger.error(
                    "Failed to update user profile",
                    extra={"reservation_id": reservation.id, "user_id": owner_id},
                    exc_info=True,
                )

        if data.discount_code:
            try:
                self.discount_service.redeem(
                    data.discount_code,
                    reservation_id=reservation.id,
                    email=reservation.email,
                    user_id=owner_id,
                )
            except Exception:
                self.logger.error(
                    "Failed to record discount code use",
                    extra={"reservation_id": reservation.id, "discount_code": data.discount_code},
                    exc_info=True,
                )

        if not actor.is_authenticated:
            result.guest_token = self.token_service.issue(reservation.email, reservation.id)
            result.guest_reservation_url = self.token_service.manage_url(result.guest_token)

        if owner_id is not None:
            before = LoyaltyLevel.for_reservation_count(previous_count)
            after = LoyaltyLevel.for_reservation_count(previous_count + 1)
            result.loyalty_level_changed = before != after
            result.new_loyalty_level = after if before != after else None

    # Reads

    def get_reservation(self, reservation_id: int, actor: Actor) -> Reservation:
        reservation = self._get_or_404(reservation_id)
        self.access_guard.resolve(reservation, actor)
        return reservation

    def get_guest_reservation(self, token: str) -> Reservation:
        """
        Load the reservation a guest token points at.

        Raises:
            GuestTokenError: token invalid or expired
            NotFoundException: no reservation with that id and email
            ForbiddenException: reservation no longer manageable
        """
        claims = self.token_service.verify(token)
        reservation = self.reservation_repository.get_by_id_and_email(
            claims.reservation_id, claims.email
        )
        if reservation is None:
            raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")
        if reservation.status in (
            ReservationStatus.CANCELLED.value,
            ReservationStatus.COMPLETED.value,
        ):
            raise ForbiddenException(
                f"This reservation is {reservation.status} and can no longer be managed",
                code="RESERVATION_NOT_MANAGEABLE",
                details={"status": reservation.status},
            )
        return reservation

    def check_availability(self, slot_date: date, start_time: time) -> bool:
        return self.slot_service.is_available(slot_date, start_time)

    def get_day_availability(self, slot_date: date) -> Dict[str, Any]:
        day = self.slot_service.get_day_availability(slot_date)
        return {
            "date": day.date,
            "is_closed": day.is_closed,
            "price": self.pricing_service.price_for(slot_date),
            "booked_start_times": day.booked_start_times,
        }

    def _get_or_404(self, reservation_id: int) -> Reservation:
        reservation = self.reservation_repository.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")
        return reservation

    @staticmethod
    def _notification_details(
        reservation: Reservation, manage_url: Optional[str] = None
    ) -> Dict[str, Any]:
        details = reservation.to_dict()
        details["reservation_id"] = reservation.id
        if manage_url:
            details["manage_url"] = manage_url
        return details
