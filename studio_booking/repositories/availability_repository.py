"""Availability overrides repository (closed days, custom prices)."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..models.availability import AvailabilityDay
from .base_repository import BaseRepository


class AvailabilityRepository(BaseRepository[AvailabilityDay]):
    def __init__(self, db: Session):
        super().__init__(db, AvailabilityDay)

    def get_for_date(self, day: date) -> Optional[AvailabilityDay]:
        return self.find_one_by(date=day)

    def is_closed(self, day: date) -> bool:
        row = self.get_for_date(day)
        return bool(row and row.is_closed)
