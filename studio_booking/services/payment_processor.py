# studio_booking/services/payment_processor.py
"""
Payment processor boundary.

The card gateway is opaque: the core only distinguishes success from failure
on capture, and a refund id from "deferred" on refund. Gateway-specific error
codes are never interpreted here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
import secrets
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..core.exceptions import PaymentProcessorError

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentProcessor(Protocol):
    def capture(self, token: str, amount: Decimal, customer: Dict[str, Any]) -> str:
        """Charge ``amount`` and return the processor order id. Raises PaymentProcessorError."""
        ...

    def refund(self, payment_reference: str, amount: Decimal) -> Optional[str]:
        """Request a refund. Returns a refund id, or None when the refund is deferred."""
        ...


def placeholder_refund_id(now: Optional[datetime] = None) -> str:
    """Reference recorded when the processor has not confirmed a refund yet."""
    moment = now or datetime.now(timezone.utc)
    return f"refund_pending_{int(moment.timestamp() * 1000)}_{secrets.token_hex(4)}"


class DeferredPaymentProcessor:
    """
    Processor used when no card gateway is wired in.

    Captures are refused so nothing is marked as paid without a real charge.
    Refunds are always deferred to staff reconciliation.
    """

    def capture(self, token: str, amount: Decimal, customer: Dict[str, Any]) -> str:
        logger.warning(
            "Card capture requested but no payment gateway is configured",
            extra={"amount": str(amount), "customer_email": customer.get("email")},
        )
        raise PaymentProcessorError("card payments are not available right now")

    def refund(self, payment_reference: str, amount: Decimal) -> Optional[str]:
        logger.info(
            "Refund deferred to manual reconciliation",
            extra={"payment_reference": payment_reference, "amount": str(amount)},
        )
        return None


def get_payment_processor() -> PaymentProcessor:
    return DeferredPaymentProcessor()
