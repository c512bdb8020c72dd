# studio_booking/models/availability.py
"""Per-date availability overrides: closed days and custom prices."""

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric
from sqlalchemy.sql import func

from ..database import Base


class AvailabilityDay(Base):
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, unique=True, index=True, nullable=False)
    is_closed = Column(Boolean, nullable=False, default=False)
    is_holiday = Column(Boolean, nullable=False, default=False)
    custom_price = Column(Numeric(10, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<AvailabilityDay {self.date} closed={self.is_closed} price={self.custom_price}>"
