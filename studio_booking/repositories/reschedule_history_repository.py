"""Reschedule history repository (append-only)."""

from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from ..models.reschedule_history import RescheduleHistoryEntry
from .base_repository import BaseRepository


class RescheduleHistoryRepository(BaseRepository[RescheduleHistoryEntry]):
    def __init__(self, db: Session):
        super().__init__(db, RescheduleHistoryEntry)

    def list_for_reservation(self, reservation_id: int) -> List[RescheduleHistoryEntry]:
        return (
            self._build_query()
            .filter(RescheduleHistoryEntry.reservation_id == reservation_id)
            .order_by(RescheduleHistoryEntry.id.asc())
            .all()
        )
