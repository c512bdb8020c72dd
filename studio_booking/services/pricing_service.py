"""
Pricing for a session date.

A custom price stored for the date wins. Otherwise holidays cost the most,
Friday to Sunday is the weekend rate, and everything else is the normal rate.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ..core.business_calendar import BusinessCalendar
from ..core.config import settings
from ..repositories.factory import RepositoryFactory
from .base import BaseService

# Friday, Saturday, Sunday
WEEKEND_PRICING_DAYS = {4, 5, 6}


class DayType(str, Enum):
    NORMAL = "normal"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"


class PricingService(BaseService):
    def __init__(self, db: Session, calendar: Optional[BusinessCalendar] = None):
        super().__init__(db)
        self.calendar = calendar or BusinessCalendar()
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    def day_type(self, day: date) -> DayType:
        if self.calendar.is_holiday(day):
            return DayType.HOLIDAY
        if day.weekday() in WEEKEND_PRICING_DAYS:
            return DayType.WEEKEND
        return DayType.NORMAL

    def base_price(self, day: date) -> Decimal:
        return {
            DayType.HOLIDAY: Decimal(settings.price_holiday),
            DayType.WEEKEND: Decimal(settings.price_weekend),
            DayType.NORMAL: Decimal(settings.price_normal),
        }[self.day_type(day)]

    @BaseService.measure_operation("price_for")
    def price_for(self, day: date) -> Decimal:
        """Authoritative price for a session on ``day``."""
        override = self.availability_repository.get_for_date(day)
        # A zero or missing custom price means "use the calendar rate"
        if override is not None and override.custom_price:
            return Decimal(override.custom_price)
        if override is not None and override.is_holiday:
            return Decimal(settings.price_holiday)
        return self.base_price(day)
