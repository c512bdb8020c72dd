# studio_booking/core/enums.py
"""
Core enums for the studio booking engine.

Stored as plain strings so rows stay readable from SQL and across dialects.
"""

from enum import Enum


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses. Only CONFIRMED is mutable."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentMethod(str, Enum):
    """How an amount reached the studio."""

    CONEKTA = "conekta"  # online card processor
    EFECTIVO = "efectivo"  # cash at the studio
    TRANSFERENCIA = "transferencia"  # bank transfer
    PENDIENTE = "pendiente"  # agreed, not yet settled


# Methods an admin may use when booking on a customer's behalf.
MANUAL_PAYMENT_METHODS = frozenset({PaymentMethod.EFECTIVO, PaymentMethod.TRANSFERENCIA})

# Methods an admin may use to settle a price increase on reschedule.
ADMIN_SETTLEMENT_METHODS = frozenset(
    {PaymentMethod.EFECTIVO, PaymentMethod.TRANSFERENCIA, PaymentMethod.PENDIENTE}
)


class RefundStatus(str, Enum):
    """Refund reconciliation state."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class AccessLevel(str, Enum):
    """How a caller is allowed to act on one reservation."""

    OWNER = "owner"
    GUEST = "guest"
    ADMIN = "admin"


class LoyaltyLevel(str, Enum):
    """Customer tier by number of confirmed reservations."""

    INICIAL = "Inicial"
    FRECUENTE = "Frecuente"
    VIP = "VIP"
    ELITE = "Elite"

    @classmethod
    def for_reservation_count(cls, count: int) -> "LoyaltyLevel":
        if count >= 10:
            return cls.ELITE
        if count >= 5:
            return cls.VIP
        if count >= 1:
            return cls.FRECUENTE
        return cls.INICIAL
