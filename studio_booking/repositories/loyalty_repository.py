# studio_booking/repositories/loyalty_repository.py
"""
Loyalty ledger repository.

Per-entry writes are guarded by ``used = false`` so two consumers can never
spend the same entry. There is no per-user lock; consumers may interleave
across different entries.
"""

from datetime import date, datetime
import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.loyalty import LoyaltyPointsEntry
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LoyaltyRepository(BaseRepository[LoyaltyPointsEntry]):
    def __init__(self, db: Session):
        super().__init__(db, LoyaltyPointsEntry)

    def _eligible_filters(self, user_id: int, today: date) -> list:
        return [
            LoyaltyPointsEntry.user_id == user_id,
            LoyaltyPointsEntry.used.is_(False),
            LoyaltyPointsEntry.revoked.is_(False),
            or_(LoyaltyPointsEntry.expires_at.is_(None), LoyaltyPointsEntry.expires_at >= today),
        ]

    def get_eligible_entries(self, user_id: int, today: date) -> List[LoyaltyPointsEntry]:
        """Spendable entries, oldest first."""
        try:
            return (
                self._build_query()
                .filter(*self._eligible_filters(user_id, today))
                .order_by(LoyaltyPointsEntry.created_at.asc(), LoyaltyPointsEntry.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading loyalty entries for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load loyalty entries: {str(e)}")

    def get_balance(self, user_id: int, today: date) -> int:
        query = self.db.query(func.coalesce(func.sum(LoyaltyPointsEntry.points), 0)).filter(
            *self._eligible_filters(user_id, today)
        )
        return int(self._execute_scalar(query) or 0)

    def mark_used(self, entry_id: int, reservation_id: int) -> int:
        """Consume a whole entry. Zero rows means someone else consumed it first."""
        return self._guarded_update(
            [LoyaltyPointsEntry.id == entry_id, LoyaltyPointsEntry.used.is_(False)],
            {"used": True, "reservation_id": reservation_id},
        )

    def decrement_points(self, entry_id: int, expected_points: int, amount: int) -> int:
        """
        Take ``amount`` out of an entry that still holds ``expected_points``.

        Guarded on both the flag and the balance read, so a concurrent split of
        the same entry cannot be applied twice.
        """
        return self._guarded_update(
            [
                LoyaltyPointsEntry.id == entry_id,
                LoyaltyPointsEntry.used.is_(False),
                LoyaltyPointsEntry.points == expected_points,
            ],
            {"points": expected_points - amount},
        )

    def add_consumed_entry(
        self,
        *,
        user_id: int,
        points: int,
        expires_at: Optional[date],
        reservation_id: int,
    ) -> LoyaltyPointsEntry:
        return self.create(
            user_id=user_id,
            points=points,
            expires_at=expires_at,
            used=True,
            revoked=False,
            reservation_id=reservation_id,
        )

    def add_grant(
        self,
        *,
        user_id: int,
        points: int,
        expires_at: Optional[date],
        reservation_id: Optional[int],
    ) -> LoyaltyPointsEntry:
        return self.create(
            user_id=user_id,
            points=points,
            expires_at=expires_at,
            used=False,
            revoked=False,
            reservation_id=reservation_id,
        )

    def revoke_for_reservation(self, reservation_id: int, revoked_at: datetime) -> int:
        """Revoke the unused entries linked to a reservation. Used rows are left as-is."""
        return self._guarded_update(
            [
                LoyaltyPointsEntry.reservation_id == reservation_id,
                LoyaltyPointsEntry.used.is_(False),
                LoyaltyPointsEntry.revoked.is_(False),
            ],
            {"revoked": True, "revoked_at": revoked_at},
        )
