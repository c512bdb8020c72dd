# studio_booking/services/reschedule_service.py
"""
Reschedule Service for the studio booking engine.

A reschedule is a two-step state machine when the new date costs more:

    request  -> checks pass, price not higher -> moved (count n -> n+1)
    request  -> checks pass, price higher     -> "payment required", unchanged
    complete -> checks repeated, payment taken -> moved (count n -> n+1)

Every move is one conditional UPDATE guarded by the ``reschedule_count``
read when the request started. Zero affected rows means another request won.
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
from ..core.config import settings
from ..core.enums import ADMIN_SETTLEMENT_METHODS, AccessLevel, PaymentMethod
from ..core.exceptions import (
    ConcurrentModificationException,
    ConflictException,
    ForbiddenException,
    InsufficientNoticeException,
    NotFoundException,
    RescheduleLimitException,
    ReservationNotActiveException,
    SlotUnavailableException,
    ValidationException,
)
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import is_slot_conflict
from .access_guard import AccessGuard
from .base import BaseService
from .notification_service import NotificationService
from .payment_processor import PaymentProcessor, get_payment_processor
from .pricing_service import PricingService
from .slot_availability_service import SlotAvailabilityService, session_end_time

logger = logging.getLogger(__name__)


@dataclass
class RescheduleOutcome:
    requires_payment: bool
    current_price: Decimal
    new_price: Decimal
    additional_amount: Decimal
    reservation: Reservation

    @property
    def message(self) -> str:
        if self.requires_payment:
            return (
                f"The new date costs {self.additional_amount:.2f} more. "
                "Complete the payment to confirm the change."
            )
        return "Reservation rescheduled successfully"


@dataclass(frozen=True)
class _AdditionalPayment:
    amount: Decimal
    method: str
    payment_id: Optional[str] = None


class RescheduleService(BaseService):
    """Moves confirmed reservations to a new slot."""

    def __init__(
        self,
        db: Session,
        calendar: Optional[BusinessCalendar] = None,
        access_guard: Optional[AccessGuard] = None,
        payment_processor: Optional[PaymentProcessor] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.calendar = calendar or BusinessCalendar()
        self.access_guard = access_guard or AccessGuard()
        self.payment_processor = payment_processor or get_payment_processor()
        self.notification_service = notification_service or NotificationService()

        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.history_repository = RepositoryFactory.create_reschedule_history_repository(db)
        self.slot_service = SlotAvailabilityService(db)
        self.pricing_service = PricingService(db, self.calendar)

    @BaseService.measure_operation("request_reschedule")
    def request_reschedule(
        self, reservation_id: int, target_date: date, target_time: time, actor: Actor
    ) -> RescheduleOutcome:
        """
        First step of a reschedule.

        Moves the reservation right away when the new date does not cost more.
        Otherwise returns ``requires_payment=True`` with the exact difference
        and leaves the reservation untouched.

        Raises:
            UnauthorizedException: caller may not manage this reservation
            ReservationNotActiveException: not confirmed
            RescheduleLimitException: customer already used their reschedule
            ValidationException: target date in the past
            InsufficientNoticeException: fewer business days left than required
            SlotUnavailableException: target slot taken or closed
            ConcurrentModificationException: lost the race to another change
        """
        reservation = self._get_or_404(reservation_id)
        access = self.access_guard.resolve(reservation, actor)
        expected_count = int(reservation.reschedule_count or 0)

        self._check_rules(reservation, access, target_date, target_time)

        current_price = Decimal(reservation.price)
        new_price = self.pricing_service.price_for(target_date)
        delta = new_price - current_price

        if delta > 0:
            self.log_operation(
                "reschedule_payment_required",
                reservation_id=reservation.id,
                additional_amount=str(delta),
            )
            return RescheduleOutcome(
                requires_payment=True,
                current_price=current_price,
                new_price=new_price,
                additional_amount=delta,
                reservation=reservation,
            )

        # A cheaper date keeps the price already paid; nothing is refunded
        self._apply(reservation, access, actor, expected_count, target_date, target_time, None)
        return RescheduleOutcome(
            requires_payment=False,
            current_price=current_price,
            new_price=new_price,
            additional_amount=Decimal("0"),
            reservation=reservation,
        )

    @BaseService.measure_operation("complete_reschedule")
    def complete_reschedule(
        self,
        reservation_id: int,
        target_date: date,
        target_time: time,
        actor: Actor,
        *,
        payment_id: Optional[str] = None,
        payment_token: Optional[str] = None,
        settlement_method: Optional[str] = None,
    ) -> RescheduleOutcome:
        """
        Second step of a reschedule that costs more.

        All checks run again and the difference is recomputed here, never
        taken from the client. Payment comes from exactly one of:

        - ``payment_id``: an order already captured by the card processor
        - ``payment_token``: captured now through the payment processor
        - ``settlement_method``: admins only; cash, transfer or pending

        Raises:
            PaymentProcessorError: capture failed, reservation untouched
            ValidationException: no payment supplied for a positive difference
            ForbiddenException: settlement method used by a non-admin
            plus everything ``request_reschedule`` raises
        """
        reservation = self._get_or_404(reservation_id)
        access = self.access_guard.resolve(reservation, actor)
        expected_count = int(reservation.reschedule_count or 0)

        self._check_rules(reservation, access, target_date, target_time)

        current_price = Decimal(reservation.price)
        new_price = self.pricing_service.price_for(target_date)
        delta = new_price - current_price

        payment: Optional[_AdditionalPayment] = None
        if delta > 0:
            payment = self._collect_payment(
                reservation, access, delta, payment_id, payment_token, settlement_method
            )

        try:
            self._apply(
                reservation, access, actor, expected_count, target_date, target_time, payment
            )
        except ConflictException:
            if payment is not None and payment.payment_id and payment_token:
                self.logger.error(
                    "Reschedule lost after capturing payment; refund needed",
                    extra={
                        "reservation_id": reservation.id,
                        "payment_id": payment.payment_id,
                        "amount": str(payment.amount),
                    },
                )
            raise

        return RescheduleOutcome(
            requires_payment=False,
            current_price=current_price,
            new_price=new_price,
            additional_amount=delta if delta > 0 else Decimal("0"),
            reservation=reservation,
        )

    # Rules

    def _check_rules(
        self,
        reservation: Reservation,
        access: AccessLevel,
        target_date: date,
        target_time: time,
    ) -> None:
        is_admin = access == AccessLevel.ADMIN

        if not reservation.is_confirmed:
            raise ReservationNotActiveException("rescheduled", reservation.status)

        count = int(reservation.reschedule_count or 0)
        if not is_admin and count >= settings.max_customer_reschedules:
            raise RescheduleLimitException(settings.max_customer_reschedules, count)

        if self.calendar.is_past(target_date):
            raise ValidationException(
                "Cannot reschedule to a date in the past",
                details={"date": target_date.isoformat()},
            )

        if not is_admin:
            # Notice is measured against the current date, not the target
            remaining = self.calendar.lead_time_days(reservation.date)
            if remaining < settings.lead_time_business_days:
                raise InsufficientNoticeException(
                    "reschedule", settings.lead_time_business_days, remaining
                )

        if reservation.date == target_date and reservation.start_time == target_time:
            raise ValidationException("The reservation is already at that date and time")

        self.slot_service.ensure_available(target_date, target_time)

    def _collect_payment(
        self,
        reservation: Reservation,
        access: AccessLevel,
        delta: Decimal,
        payment_id: Optional[str],
        payment_token: Optional[str],
        settlement_method: Optional[str],
    ) -> _AdditionalPayment:
        if settlement_method:
            if access != AccessLevel.ADMIN:
                raise ForbiddenException(
                    "Only administrators can record a settlement method",
                    code="SETTLEMENT_REQUIRES_ADMIN",
                )
            allowed = sorted(method.value for method in ADMIN_SETTLEMENT_METHODS)
            if settlement_method not in allowed:
                raise ValidationException(
                    f"Unsupported settlement method: {settlement_method}",
                    details={"allowed": allowed},
                )
            return _AdditionalPayment(amount=delta, method=settlement_method)

        if payment_token:
            # Raises PaymentProcessorError before anything is written
            order_id = self.payment_processor.capture(
                payment_token,
                delta,
                {
                    "email": reservation.email,
                    "name": reservation.name,
                    "phone": reservation.phone,
                    "reservation_id": reservation.id,
                },
            )
            return _AdditionalPayment(
                amount=delta, method=PaymentMethod.CONEKTA.value, payment_id=order_id
            )

        if payment_id:
            return _AdditionalPayment(
                amount=delta, method=PaymentMethod.CONEKTA.value, payment_id=payment_id
            )

        raise ValidationException(
            f"An additional payment of {delta:.2f} is required to reschedule",
            code="PAYMENT_REQUIRED",
            details={"additional_amount": str(delta)},
        )

    # Write

    def _apply(
        self,
        reservation: Reservation,
        access: AccessLevel,
        actor: Actor,
        expected_count: int,
        target_date: date,
        target_time: time,
        payment: Optional[_AdditionalPayment],
    ) -> None:
        previous_date = reservation.date
        previous_time = reservation.start_time
        actor_id = None if access == AccessLevel.GUEST else actor.user_id

        values: Dict[str, Any] = {
            "date": target_date,
            "start_time": target_time,
            "end_time": session_end_time(target_time),
            "rescheduled_by_user_id": actor_id,
        }
        if expected_count == 0:
            values["original_date"] = previous_date
            values["original_start_time"] = previous_time
            values["original_payment_id"] = reservation.payment_id
        if payment is not None:
            values["price"] = Decimal(reservation.price) + payment.amount
            values["additional_payment_id"] = payment.payment_id
            values["additional_payment_amount"] = payment.amount
            values["additional_payment_method"] = payment.method

        with self.transaction():
            try:
                affected = self.reservation_repository.apply_reschedule(
                    reservation.id, expected_count, values
                )
            except IntegrityError as exc:
                if not is_slot_conflict(exc):
                    raise
                prometheus_metrics.inc_slot_conflict("unique_index")
                raise SlotUnavailableException(
                    details={
                        "date": target_date.isoformat(),
                        "start_time": target_time.strftime("%H:%M"),
                    }
                ) from exc

            if affected == 0:
                prometheus_metrics.inc_optimistic_lock_conflict()
                self.logger.warning(
                    "Reschedule lost optimistic lock",
                    extra={"reservation_id": reservation.id, "expected_version": expected_count},
                )
                raise ConcurrentModificationException(reservation.id, expected_count)

            self.history_repository.create(
                reservation_id=reservation.id,
                rescheduled_by_user_id=actor_id,
                previous_date=previous_date,
                previous_start_time=previous_time,
                new_date=target_date,
                new_start_time=target_time,
                additional_payment_amount=payment.amount if payment else None,
                additional_payment_method=payment.method if payment else None,
            )

        self.reservation_repository.refresh(reservation)

        details = reservation.to_dict()
        details.update(
            {
                "reservation_id": reservation.id,
                "previous_date": previous_date.isoformat(),
                "previous_start_time": previous_time.strftime("%H:%M"),
                "additional_amount": str(payment.amount) if payment else None,
            }
        )
        self.notification_service.reservation_rescheduled(details)

        self.log_operation(
            "reservation_rescheduled",
            reservation_id=reservation.id,
            access=access.value,
            version=expected_count + 1,
            additional_amount=str(payment.amount) if payment else None,
        )

    def _get_or_404(self, reservation_id: int) -> Reservation:
        reservation = self.reservation_repository.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")
        return reservation
