"""
Slot availability.

A slot is free when its day is not closed and no confirmed reservation holds
the exact (date, start_time). The check must be repeated right before every
write that claims a slot; the partial unique index is the final backstop.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import SlotUnavailableException
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService


def session_end_time(start_time: time) -> time:
    """End of a session that starts at ``start_time``."""
    start = datetime.combine(date.min, start_time)
    return (start + timedelta(minutes=settings.session_duration_minutes)).time()


@dataclass(frozen=True)
class DayAvailability:
    date: date
    is_closed: bool
    booked_start_times: List[time]


class SlotAvailabilityService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    @BaseService.measure_operation("is_available")
    def is_available(self, slot_date: date, start_time: time) -> bool:
        if self.availability_repository.is_closed(slot_date):
            return False
        return not self.reservation_repository.is_slot_occupied(slot_date, start_time)

    def ensure_available(self, slot_date: date, start_time: time) -> None:
        """Raise SlotUnavailableException if the slot cannot be claimed right now."""
        if self.is_available(slot_date, start_time):
            return
        prometheus_metrics.inc_slot_conflict("precheck")
        self.logger.info(
            "Slot no longer available",
            extra={"date": slot_date.isoformat(), "start_time": start_time.isoformat()},
        )
        raise SlotUnavailableException(
            details={"date": slot_date.isoformat(), "start_time": start_time.strftime("%H:%M")}
        )

    def get_day_availability(self, slot_date: date) -> DayAvailability:
        return DayAvailability(
            date=slot_date,
            is_closed=self.availability_repository.is_closed(slot_date),
            booked_start_times=self.reservation_repository.get_booked_start_times(slot_date),
        )
