"""Refund computation for cancelled reservations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ..core.config import settings
from ..core.enums import PaymentMethod
from ..models.reschedule_history import RescheduleHistoryEntry
from ..models.reservation import Reservation

CENTS = Decimal("0.01")


def _is_card(method: Optional[str]) -> bool:
    return (method or "").strip().lower() == PaymentMethod.CONEKTA.value


@dataclass(frozen=True)
class RefundPolicyResult:
    total_card_paid: Decimal
    refund_amount: Decimal
    percentage: Decimal

    @property
    def owes_refund(self) -> bool:
        return self.refund_amount > 0

    def to_payload(self) -> dict[str, object]:
        return {
            "total_card_paid": str(self.total_card_paid),
            "refund_amount": str(self.refund_amount),
            "percentage": str(self.percentage),
        }


class RefundPolicyEngine:
    """
    Only money that went through the card processor is refundable.

    The initial charge counts when the reservation was paid by card, plus every
    reschedule surcharge whose method was the card processor. Cash, transfer
    and pending amounts are settled at the studio and never refunded here.
    """

    def __init__(self, percentage: Optional[float] = None) -> None:
        if percentage is None:
            percentage = settings.refund_percentage
        self.percentage = Decimal(str(percentage))

    def total_card_paid(
        self, reservation: Reservation, history: Iterable[RescheduleHistoryEntry]
    ) -> Decimal:
        total = Decimal("0")
        if _is_card(reservation.payment_method):
            initial = reservation.original_price
            if initial is None:
                initial = reservation.price
            total += Decimal(initial or 0)
        for entry in history:
            if _is_card(entry.additional_payment_method):
                total += Decimal(entry.additional_payment_amount or 0)
        return total

    def refund_amount(self, total_card_paid: Decimal) -> Decimal:
        if total_card_paid <= 0:
            return Decimal("0.00")
        return (Decimal(total_card_paid) * self.percentage).quantize(CENTS, rounding=ROUND_HALF_UP)

    def evaluate(
        self, reservation: Reservation, history: Iterable[RescheduleHistoryEntry]
    ) -> RefundPolicyResult:
        total = self.total_card_paid(reservation, history)
        return RefundPolicyResult(
            total_card_paid=total,
            refund_amount=self.refund_amount(total),
            percentage=self.percentage,
        )
