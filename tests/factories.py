# tests/factories.py
"""Row builders, collaborator fakes and shared dates for the test suite."""

from datetime import date, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from studio_booking.auth import create_access_token
from studio_booking.core.exceptions import PaymentProcessorError
from studio_booking.models.availability import AvailabilityDay
from studio_booking.models.discount_code import DiscountCode
from studio_booking.models.loyalty import LoyaltyPointsEntry
from studio_booking.models.reservation import Reservation
from studio_booking.models.user import User
from studio_booking.principal import Actor
from studio_booking.services.slot_availability_service import session_end_time

# Monday. No configured holidays in June 2026.
TODAY = date(2026, 6, 1)
NEXT_MONDAY = date(2026, 6, 8)  # 5 business days of notice
THIS_FRIDAY = date(2026, 6, 5)  # 4 business days of notice

GUEST_SECRET = "test-guest-token-secret-0123456789abcdef"


class FakePaymentProcessor:
    """Records calls; configure ``capture_error`` / ``refund_result`` per test."""

    def __init__(self) -> None:
        self.captures: List[Dict[str, Any]] = []
        self.refunds: List[Dict[str, Any]] = []
        self.capture_error: Optional[str] = None
        self.refund_result: Optional[str] = "re_test_123"
        self.refund_exception: Optional[Exception] = None

    def capture(self, token: str, amount: Decimal, customer: Dict[str, Any]) -> str:
        self.captures.append({"token": token, "amount": amount, "customer": customer})
        if self.capture_error:
            raise PaymentProcessorError(self.capture_error)
        return f"ord_{len(self.captures)}"

    def refund(self, payment_reference: str, amount: Decimal) -> Optional[str]:
        self.refunds.append({"payment_reference": payment_reference, "amount": amount})
        if self.refund_exception is not None:
            raise self.refund_exception
        return self.refund_result


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: List[tuple] = []
        self.fail = False

    def _record(self, kind: str, details: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((kind, details))

    def send_confirmation(self, details: Dict[str, Any]) -> None:
        self._record("confirmation", details)

    def send_reschedule(self, details: Dict[str, Any]) -> None:
        self._record("reschedule", details)

    def send_cancellation(self, details: Dict[str, Any]) -> None:
        self._record("cancellation", details)

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.sent]


def make_user(db: Session, email: str = "ana@example.com", **overrides: Any) -> User:
    user = User(
        email=email,
        name=overrides.pop("name", "Ana"),
        phone=overrides.pop("phone", "8110000000"),
        is_admin=overrides.pop("is_admin", False),
        **overrides,
    )
    db.add(user)
    db.commit()
    return user


def make_reservation(db: Session, **overrides: Any) -> Reservation:
    start = overrides.pop("start_time", time(10, 0))
    price = Decimal(str(overrides.pop("price", "1500")))
    values: Dict[str, Any] = {
        "user_id": None,
        "email": "ana@example.com",
        "name": "Ana",
        "phone": "8110000000",
        "date": NEXT_MONDAY,
        "start_time": start,
        "end_time": session_end_time(start),
        "price": price,
        "original_price": price,
        "status": "confirmed",
        "payment_id": "ord_initial",
        "payment_method": "conekta",
        "reschedule_count": 0,
        "loyalty_points_used": 0,
    }
    values.update(overrides)
    reservation = Reservation(**values)
    db.add(reservation)
    db.commit()
    return reservation


def add_points(
    db: Session,
    user: User,
    points: int,
    *,
    expires_at: Optional[date] = None,
    reservation_id: Optional[int] = None,
    used: bool = False,
    revoked: bool = False,
) -> LoyaltyPointsEntry:
    entry = LoyaltyPointsEntry(
        user_id=user.id,
        points=points,
        expires_at=expires_at if expires_at is not None else TODAY + timedelta(days=90),
        reservation_id=reservation_id,
        used=used,
        revoked=revoked,
    )
    db.add(entry)
    db.commit()
    return entry


def make_discount_code(db: Session, code: str = "VERANO10", **overrides: Any) -> DiscountCode:
    values: Dict[str, Any] = {
        "code": code,
        "description": "Summer promo",
        "discount_percentage": Decimal("10"),
        "valid_from": TODAY - timedelta(days=10),
        "valid_until": TODAY + timedelta(days=30),
        "max_uses": 5,
        "current_uses": 0,
        "active": True,
    }
    values.update(overrides)
    discount = DiscountCode(**values)
    db.add(discount)
    db.commit()
    return discount


def set_day(db: Session, day: date, **overrides: Any) -> AvailabilityDay:
    row = AvailabilityDay(date=day, **overrides)
    db.add(row)
    db.commit()
    return row


def owner_actor(user: User) -> Actor:
    return Actor(user_id=user.id, email=user.email, is_admin=False)


def admin_actor(user: User) -> Actor:
    return Actor(user_id=user.id, email=user.email, is_admin=True)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
