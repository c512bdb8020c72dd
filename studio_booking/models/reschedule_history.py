"""Append-only reschedule history for reservations."""

from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class RescheduleHistoryEntry(Base):
    """One completed reschedule: where the reservation was, where it went, and who paid what."""

    __tablename__ = "reservation_reschedule_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_id = Column(
        Integer,
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rescheduled_at = Column(DateTime(timezone=True), server_default=func.now())
    # NULL for the guest-token flow
    rescheduled_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    previous_date = Column(Date, nullable=False)
    previous_start_time = Column(Time, nullable=False)
    new_date = Column(Date, nullable=False)
    new_start_time = Column(Time, nullable=False)

    additional_payment_amount = Column(Numeric(10, 2), nullable=True)
    additional_payment_method = Column(String(20), nullable=True)

    reservation = relationship("Reservation", back_populates="reschedule_history")

    def __repr__(self) -> str:
        return (
            f"<RescheduleHistoryEntry reservation={self.reservation_id} "
            f"{self.previous_date} {self.previous_start_time} -> {self.new_date} {self.new_start_time}>"
        )
