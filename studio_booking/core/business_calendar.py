# studio_booking/core/business_calendar.py
"""
Business calendar for the studio.

"Today" is always the civil date in the studio's timezone, never the server's.
Business days are weekdays that are not configured holidays.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

import pytz

from .config import settings

BUSINESS_WEEKDAYS = {0, 1, 2, 3, 4}


class BusinessCalendar:
    """Clock plus business-day arithmetic, injectable for tests."""

    def __init__(
        self,
        timezone_name: Optional[str] = None,
        holidays: Optional[Iterable[date]] = None,
        today_provider: Optional[Callable[[], date]] = None,
    ) -> None:
        self.timezone = pytz.timezone(timezone_name or settings.business_timezone)
        self.holidays = frozenset(settings.holidays if holidays is None else holidays)
        self._today_provider = today_provider

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def today(self) -> date:
        if self._today_provider is not None:
            return self._today_provider()
        return self.now().date()

    def tomorrow(self) -> date:
        return self.today() + timedelta(days=1)

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    def is_business_day(self, day: date) -> bool:
        return day.weekday() in BUSINESS_WEEKDAYS and not self.is_holiday(day)

    def next_business_day(self, day: date) -> date:
        current = day + timedelta(days=1)
        while not self.is_business_day(current):
            current += timedelta(days=1)
        return current

    def business_days_between(self, start: date, end: date) -> int:
        """
        Count business days in [start, end], both inclusive.

        Returns 0 when start is after end. A non-business start is moved to the
        next business day before counting.
        """
        if start > end:
            return 0

        current = start if self.is_business_day(start) else self.next_business_day(start)
        count = 0
        while current <= end:
            if self.is_business_day(current):
                count += 1
            current += timedelta(days=1)
        return count

    def lead_time_days(self, reservation_date: date) -> int:
        """Business days of notice left for a reservation, counting from tomorrow."""
        return self.business_days_between(self.tomorrow(), reservation_date)

    def is_past(self, day: date) -> bool:
        return day < self.today()


def get_business_calendar() -> BusinessCalendar:
    return BusinessCalendar()
