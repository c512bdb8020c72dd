# studio_booking/repositories/reservation_repository.py
"""
Reservation Repository.

Owns every read and write on ``reservations``. Mutations that must not lose a
race are expressed as conditional updates whose WHERE clause carries the
value the caller read.
"""

from datetime import date, datetime, time
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReservationStatus
from ..core.exceptions import RepositoryException
from ..models.reservation import SLOT_UNIQUE_INDEX, Reservation
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[Reservation]):
    def __init__(self, db: Session):
        super().__init__(db, Reservation)

    # Slot queries

    def is_slot_occupied(self, slot_date: date, start_time: time) -> bool:
        """True if a confirmed reservation holds exactly this (date, start_time)."""
        try:
            query = self.db.query(Reservation.id).filter(
                Reservation.date == slot_date,
                Reservation.start_time == start_time,
                Reservation.status == ReservationStatus.CONFIRMED.value,
            )
            return query.first() is not None
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking slot {slot_date} {start_time}: {str(e)}")
            raise RepositoryException(f"Failed to check slot: {str(e)}")

    def get_booked_start_times(self, slot_date: date) -> List[time]:
        """Start times already taken on a date."""
        try:
            rows = (
                self.db.query(Reservation.start_time)
                .filter(
                    Reservation.date == slot_date,
                    Reservation.status == ReservationStatus.CONFIRMED.value,
                )
                .order_by(Reservation.start_time)
                .all()
            )
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing booked times for {slot_date}: {str(e)}")
            raise RepositoryException(f"Failed to list booked times: {str(e)}")

    # Lookups

    def get_by_id_and_email(self, reservation_id: int, email: str) -> Optional[Reservation]:
        """Case-insensitive email match, used by the guest token flow."""
        try:
            return (
                self.db.query(Reservation)
                .filter(
                    Reservation.id == reservation_id,
                    func.lower(Reservation.email) == email.strip().lower(),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting reservation {reservation_id} by email: {str(e)}")
            raise RepositoryException(f"Failed to retrieve reservation: {str(e)}")

    def count_confirmed_for_user(self, user_id: int) -> int:
        return self.count(user_id=user_id, status=ReservationStatus.CONFIRMED.value)

    # Conditional writes

    def apply_reschedule(
        self,
        reservation_id: int,
        expected_reschedule_count: int,
        values: Dict[str, Any],
    ) -> int:
        """
        Move a reservation and bump its version in one statement.

        Succeeds only while the row is still confirmed and still carries
        ``expected_reschedule_count``. Returns affected rows (0 or 1).
        """
        values = dict(values)
        values["reschedule_count"] = expected_reschedule_count + 1
        return self._guarded_update(
            [
                Reservation.id == reservation_id,
                Reservation.reschedule_count == expected_reschedule_count,
                Reservation.status == ReservationStatus.CONFIRMED.value,
            ],
            values,
        )

    def set_loyalty_points_used(self, reservation_id: int, points: int) -> int:
        return self._guarded_update(
            [Reservation.id == reservation_id],
            {"loyalty_points_used": points},
        )

    def mark_cancelled(
        self,
        reservation_id: int,
        *,
        refund_amount: Any,
        refund_status: Optional[str],
        refund_id: Optional[str],
        cancelled_at: datetime,
        cancelled_by_user_id: Optional[int],
        cancellation_reason: Optional[str] = None,
    ) -> int:
        """
        Flip a confirmed reservation to cancelled with its refund fields.

        Not version-guarded; the status predicate keeps a second cancel from
        overwriting the first one's refund data.
        """
        return self._guarded_update(
            [
                Reservation.id == reservation_id,
                Reservation.status == ReservationStatus.CONFIRMED.value,
            ],
            {
                "status": ReservationStatus.CANCELLED.value,
                "refund_amount": refund_amount,
                "refund_status": refund_status,
                "refund_id": refund_id,
                "cancelled_at": cancelled_at,
                "cancelled_by_user_id": cancelled_by_user_id,
                "cancellation_reason": cancellation_reason,
            },
        )


def is_slot_conflict(exc: IntegrityError) -> bool:
    """True when an IntegrityError came from the confirmed-slot unique index."""
    message = str(getattr(exc, "orig", exc))
    if SLOT_UNIQUE_INDEX in message:
        return True
    # SQLite reports the columns instead of the index name
    return "reservations.date, reservations.start_time" in message
