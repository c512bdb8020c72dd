# studio_booking/models/loyalty.py
"""
Loyalty points ledger.

Each row is a grant or a consumption record. ``points`` is what is left in the
entry. An entry is spendable while ``used`` and ``revoked`` are false and it has
not expired. Once ``used`` is true the row is never touched again.
"""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class LoyaltyPointsEntry(Base):
    __tablename__ = "loyalty_points"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)
    expires_at = Column(Date, nullable=True)

    used = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    revoked = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    # Granting reservation for unused rows, consuming reservation for used rows
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    __table_args__ = (
        Index("idx_loyalty_points_reservation_id", "reservation_id", "revoked", "used"),
    )

    def __repr__(self) -> str:
        return (
            f"<LoyaltyPointsEntry {self.id}: user={self.user_id} points={self.points} "
            f"used={self.used} revoked={self.revoked}>"
        )
