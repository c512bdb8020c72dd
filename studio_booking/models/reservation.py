# studio_booking/models/reservation.py
"""
Reservation model for the studio.

A reservation is the single source of truth for one sold slot. It is never
physically deleted; cancellation and completion are status changes.

Concurrency: ``reschedule_count`` doubles as the optimistic-lock token. Every
reschedule write is conditioned on the value read at the start of the request.
Double booking is prevented at the store level by a partial unique index on
(date, start_time) restricted to confirmed rows.
"""

import logging
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import PaymentMethod, ReservationStatus
from ..database import Base

logger = logging.getLogger(__name__)

SLOT_UNIQUE_INDEX = "uq_reservations_confirmed_slot"


class Reservation(Base):
    """One customer's claim on one (date, start_time) slot."""

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owner linkage (NULL for guests)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Contact
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)

    # Slot
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Pricing (price is cumulative across reschedules)
    price = Column(Numeric(10, 2), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    last_minute_discount = Column(Numeric(10, 2), nullable=False, default=0)
    loyalty_discount = Column(Numeric(10, 2), nullable=False, default=0)
    loyalty_points_used = Column(Integer, nullable=False, default=0)
    credits_used = Column(Numeric(10, 2), nullable=False, default=0)
    referral_discount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_code = Column(String(50), nullable=True)
    discount_code_discount = Column(Numeric(10, 2), nullable=False, default=0)

    status = Column(
        String(20),
        nullable=False,
        default=ReservationStatus.CONFIRMED.value,
        server_default=text("'confirmed'"),
        index=True,
    )

    # Payment
    payment_id = Column(String(255), nullable=True)
    payment_method = Column(
        String(20), nullable=False, default=PaymentMethod.CONEKTA.value
    )

    # Reschedule (reschedule_count is the optimistic-lock version)
    reschedule_count = Column(Integer, nullable=False, default=0, server_default=text("0"))
    original_date = Column(Date, nullable=True)
    original_start_time = Column(Time, nullable=True)
    original_payment_id = Column(String(255), nullable=True)
    additional_payment_id = Column(String(255), nullable=True)
    additional_payment_amount = Column(Numeric(10, 2), nullable=True)
    additional_payment_method = Column(String(20), nullable=True)
    rescheduled_by_user_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Refund / cancellation
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_status = Column(String(20), nullable=True)
    refund_id = Column(String(255), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Admin manual booking
    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    reschedule_history = relationship(
        "RescheduleHistoryEntry",
        back_populates="reservation",
        order_by="RescheduleHistoryEntry.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'completed')",
            name="ck_reservations_status",
        ),
        CheckConstraint(
            "payment_method IN ('conekta', 'efectivo', 'transferencia')",
            name="ck_reservations_payment_method",
        ),
        CheckConstraint(
            "refund_status IS NULL OR refund_status IN ('pending', 'processed', 'failed')",
            name="ck_reservations_refund_status",
        ),
        CheckConstraint("price >= 0", name="ck_reservations_price_non_negative"),
        CheckConstraint("reschedule_count >= 0", name="ck_reservations_reschedule_count"),
        Index(
            SLOT_UNIQUE_INDEX,
            "date",
            "start_time",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: {self.email} date={self.date} "
            f"time={self.start_time} status={self.status} v={self.reschedule_count}>"
        )

    @property
    def is_confirmed(self) -> bool:
        return self.status == ReservationStatus.CONFIRMED.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for notifications and logs."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "date": self.date.isoformat() if self.date else None,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "price": str(self.price),
            "status": self.status,
            "reschedule_count": self.reschedule_count,
        }
