# studio_booking/services/cancellation_service.py
"""
Cancellation Service for the studio booking engine.

Cancelling refunds a fixed share of what was paid by card. The refund call to
the processor is not part of the database transaction: when the processor
does not confirm a refund, the reservation is still cancelled with refund
status ``pending`` and a placeholder reference for staff to reconcile.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.business_calendar import BusinessCalendar
from ..core.config import settings
from ..core.enums import AccessLevel, RefundStatus
from ..core.exceptions import (
    InsufficientNoticeException,
    NotFoundException,
    ReservationNotActiveException,
)
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from .access_guard import AccessGuard
from .base import BaseService
from .loyalty_ledger_service import LoyaltyLedgerService
from .notification_service import NotificationService
from .payment_processor import PaymentProcessor, get_payment_processor, placeholder_refund_id
from .refund_policy import RefundPolicyEngine, RefundPolicyResult

logger = logging.getLogger(__name__)


@dataclass
class CancellationOutcome:
    reservation: Reservation
    policy: RefundPolicyResult
    refund_status: Optional[str]
    refund_id: Optional[str]

    @property
    def message(self) -> str:
        if self.policy.owes_refund:
            return (
                f"Reservation cancelled. A refund of {self.policy.refund_amount:.2f} "
                "will be processed."
            )
        return "Reservation cancelled. No card payment to refund."


class CancellationService(BaseService):
    def __init__(
        self,
        db: Session,
        calendar: Optional[BusinessCalendar] = None,
        access_guard: Optional[AccessGuard] = None,
        payment_processor: Optional[PaymentProcessor] = None,
        notification_service: Optional[NotificationService] = None,
        refund_policy: Optional[RefundPolicyEngine] = None,
    ):
        super().__init__(db)
        self.calendar = calendar or BusinessCalendar()
        self.access_guard = access_guard or AccessGuard()
        self.payment_processor = payment_processor or get_payment_processor()
        self.notification_service = notification_service or NotificationService()
        self.refund_policy = refund_policy or RefundPolicyEngine()

        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.history_repository = RepositoryFactory.create_reschedule_history_repository(db)
        self.ledger = LoyaltyLedgerService(db, self.calendar)

    @BaseService.measure_operation("cancel_reservation")
    def cancel(
        self, reservation_id: int, actor: Actor, reason: Optional[str] = None
    ) -> CancellationOutcome:
        """
        Cancel a confirmed reservation and record its refund.

        On PostgreSQL the reservation row stays locked from the read until the
        cancellation commits, including the payment processor refund call. A
        concurrent cancel blocks on the lock, then sees the cancelled status and
        fails without contacting the processor, so each booking is refunded at
        most once.

        Raises:
            NotFoundException: unknown reservation
            UnauthorizedException: caller may not manage this reservation
            ReservationNotActiveException: not confirmed (includes a lost
                race against a concurrent cancellation)
            InsufficientNoticeException: fewer business days left than required
        """
        reservation = self.reservation_repository.get_by_id(reservation_id, for_update=True)
        if reservation is None:
            raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")

        access = self.access_guard.resolve(reservation, actor)
        is_admin = access == AccessLevel.ADMIN

        if not reservation.is_confirmed:
            raise ReservationNotActiveException("cancelled", reservation.status)

        if not is_admin:
            remaining = self.calendar.lead_time_days(reservation.date)
            if remaining < settings.lead_time_business_days:
                raise InsufficientNoticeException(
                    "cancellation", settings.lead_time_business_days, remaining
                )

        history = self.history_repository.list_for_reservation(reservation.id)
        policy = self.refund_policy.evaluate(reservation, history)

        refund_status: Optional[str] = None
        refund_id: Optional[str] = None
        if policy.owes_refund:
            refund_status = RefundStatus.PENDING.value
            refund_id = self._request_refund(reservation, policy.refund_amount)

        cancelled_at = datetime.now(timezone.utc)
        with self.transaction():
            affected = self.reservation_repository.mark_cancelled(
                reservation.id,
                refund_amount=policy.refund_amount,
                refund_status=refund_status,
                refund_id=refund_id,
                cancelled_at=cancelled_at,
                cancelled_by_user_id=actor.user_id if is_admin else None,
                cancellation_reason=reason,
            )
            if affected == 0:
                self.logger.error(
                    "Reservation left confirmed state before cancellation was written",
                    extra={"reservation_id": reservation.id, "refund_id": refund_id},
                )
                self.reservation_repository.refresh(reservation)
                raise ReservationNotActiveException("cancelled", reservation.status)

            revoked = self.ledger.revoke_for_reservation(reservation.id, use_transaction=False)

        self.reservation_repository.refresh(reservation)

        details = reservation.to_dict()
        details.update(
            {
                "reservation_id": reservation.id,
                "refund_amount": str(policy.refund_amount),
                "refund_status": refund_status,
            }
        )
        self.notification_service.reservation_cancelled(details)

        self.log_operation(
            "reservation_cancelled",
            reservation_id=reservation.id,
            access=access.value,
            refund=policy.to_payload(),
            revoked_points_entries=revoked,
        )
        return CancellationOutcome(
            reservation=reservation,
            policy=policy,
            refund_status=refund_status,
            refund_id=refund_id,
        )

    def _request_refund(self, reservation: Reservation, amount: Decimal) -> str:
        """Ask the processor for a refund; fall back to a placeholder reference."""
        reference = reservation.original_payment_id or reservation.payment_id
        refund_id: Optional[str] = None
        source = "deferred"
        if reference:
            try:
                refund_id = self.payment_processor.refund(reference, amount)
            except Exception as exc:
                # The cancellation proceeds; staff reconcile the refund
                source = "processor_error"
                self.logger.warning(
                    "Refund request failed: %s",
                    exc,
                    extra={"reservation_id": reservation.id, "amount": str(amount)},
                    exc_info=True,
                )
        else:
            source = "no_payment_reference"

        if refund_id:
            return refund_id

        prometheus_metrics.inc_refund_pending(source)
        placeholder = placeholder_refund_id()
        self.logger.info(
            "Refund recorded as pending for manual reconciliation",
            extra={
                "reservation_id": reservation.id,
                "refund_id": placeholder,
                "amount": str(amount),
                "reconciliation_mode": settings.refund_reconciliation_mode,
            },
        )
        return placeholder
