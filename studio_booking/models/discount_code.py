# studio_booking/models/discount_code.py
"""Promotional discount codes and their per-email redemptions."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class DiscountCode(Base):
    __tablename__ = "discount_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=False)
    valid_from = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False)
    max_uses = Column(Integer, nullable=False, default=100)
    current_uses = Column(Integer, nullable=False, default=0, server_default=text("0"))
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    uses = relationship("DiscountCodeUse", back_populates="discount_code")

    __table_args__ = (
        CheckConstraint("current_uses <= max_uses", name="ck_discount_codes_usage_cap"),
    )

    def __repr__(self) -> str:
        return f"<DiscountCode {self.code}: {self.current_uses}/{self.max_uses}>"


class DiscountCodeUse(Base):
    """One redemption. A code can be used once per email."""

    __tablename__ = "discount_code_uses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    discount_code_id = Column(
        Integer, ForeignKey("discount_codes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=True)
    used_at = Column(DateTime(timezone=True), server_default=func.now())

    discount_code = relationship("DiscountCode", back_populates="uses")

    __table_args__ = (
        UniqueConstraint("discount_code_id", "email", name="uq_discount_code_uses_code_email"),
    )
