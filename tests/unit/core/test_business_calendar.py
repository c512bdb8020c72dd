from datetime import date

import pytest

from studio_booking.core.business_calendar import BusinessCalendar
from tests.factories import NEXT_MONDAY, THIS_FRIDAY, TODAY


@pytest.fixture
def cal() -> BusinessCalendar:
    return BusinessCalendar(timezone_name="America/Monterrey", today_provider=lambda: TODAY)


class TestBusinessDays:
    def test_weekdays_inclusive(self, cal: BusinessCalendar) -> None:
        # Mon..Fri of the same week
        assert cal.business_days_between(date(2026, 6, 1), date(2026, 6, 5)) == 5

    def test_start_after_end_is_zero(self, cal: BusinessCalendar) -> None:
        assert cal.business_days_between(date(2026, 6, 5), date(2026, 6, 1)) == 0

    def test_weekend_start_moves_to_next_business_day(self, cal: BusinessCalendar) -> None:
        # Saturday -> Monday counts only Monday
        assert cal.business_days_between(date(2026, 6, 6), date(2026, 6, 8)) == 1

    def test_same_day_weekend_is_zero(self, cal: BusinessCalendar) -> None:
        assert cal.business_days_between(date(2026, 6, 6), date(2026, 6, 6)) == 0

    def test_holidays_are_skipped(self, cal: BusinessCalendar) -> None:
        # 2026-09-16 is a configured holiday (Wednesday)
        assert not cal.is_business_day(date(2026, 9, 16))
        assert cal.business_days_between(date(2026, 9, 14), date(2026, 9, 18)) == 4

    def test_custom_holidays(self) -> None:
        cal = BusinessCalendar(holidays=[date(2026, 6, 3)], today_provider=lambda: TODAY)
        assert cal.is_holiday(date(2026, 6, 3))
        assert cal.business_days_between(date(2026, 6, 1), date(2026, 6, 5)) == 4

    def test_next_business_day_skips_weekend(self, cal: BusinessCalendar) -> None:
        assert cal.next_business_day(date(2026, 6, 5)) == date(2026, 6, 8)


class TestLeadTime:
    def test_following_monday_has_five_days(self, cal: BusinessCalendar) -> None:
        assert cal.tomorrow() == date(2026, 6, 2)
        assert cal.lead_time_days(NEXT_MONDAY) == 5

    def test_friday_has_four_days(self, cal: BusinessCalendar) -> None:
        assert cal.lead_time_days(THIS_FRIDAY) == 4

    def test_past_reservation_has_none(self, cal: BusinessCalendar) -> None:
        assert cal.lead_time_days(date(2026, 5, 29)) == 0


class TestToday:
    def test_today_provider_wins(self, cal: BusinessCalendar) -> None:
        assert cal.today() == TODAY
        assert cal.is_past(date(2026, 5, 31))
        assert not cal.is_past(TODAY)

    def test_now_is_in_business_timezone(self) -> None:
        cal = BusinessCalendar(timezone_name="America/Monterrey")
        assert cal.now().tzinfo is not None
        assert cal.timezone.zone == "America/Monterrey"
        assert cal.today() == cal.now().date()
