"""
Loyalty points ledger service.

Consumption is FIFO over spendable entries. Each entry write is guarded by
``used = false``; a zero-row write means another consumer got there first.
Once the consuming reservation exists it is never rolled back: its
``loyalty_points_used`` is corrected to what was really consumed and the
race is surfaced as a LoyaltyConsumptionError for manual reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_FLOOR
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.business_calendar import BusinessCalendar
from ..core.config import settings
from ..core.enums import LoyaltyLevel
from ..core.exceptions import (
    InsufficientPointsException,
    LoyaltyConsumptionError,
    ValidationException,
)
from ..models.loyalty import LoyaltyPointsEntry
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumptionResult:
    requested: int
    consumed: int

    @property
    def complete(self) -> bool:
        return self.consumed == self.requested


class LoyaltyLedgerService(BaseService):
    """Append-only ledger of point grants and consumptions per user."""

    def __init__(self, db: Session, calendar: Optional[BusinessCalendar] = None):
        super().__init__(db)
        self.calendar = calendar or BusinessCalendar()
        self.loyalty_repository = RepositoryFactory.create_loyalty_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)

    @BaseService.measure_operation("loyalty_balance")
    def balance(self, user_id: int) -> int:
        """Sum of unused, unrevoked, unexpired entries."""
        return self.loyalty_repository.get_balance(user_id, self.calendar.today())

    def ensure_sufficient(self, user_id: int, points: int) -> int:
        """Raise before any write if the user cannot cover ``points``. Returns the balance."""
        available = self.balance(user_id)
        if points > available:
            raise InsufficientPointsException(requested=points, available=available)
        return available

    @BaseService.measure_operation("loyalty_reserve_and_consume")
    def reserve_and_consume(
        self, user_id: int, points_requested: int, consumer_reservation_id: int
    ) -> ConsumptionResult:
        """
        Spend ``points_requested`` for ``consumer_reservation_id``, oldest entries first.

        Raises:
            ValidationException: negative request
            InsufficientPointsException: balance too low, nothing written
            LoyaltyConsumptionError: an entry was spent concurrently; partial
                consumption and the corrected reservation are committed
        """
        if points_requested < 0:
            raise ValidationException("Loyalty points must be a non-negative integer")
        if points_requested == 0:
            return ConsumptionResult(requested=0, consumed=0)

        entries = self.loyalty_repository.get_eligible_entries(user_id, self.calendar.today())
        available = sum(max(int(entry.points or 0), 0) for entry in entries)
        if available < points_requested:
            raise InsufficientPointsException(requested=points_requested, available=available)

        consumed = 0
        race_entry_id: Optional[int] = None

        with self.transaction():
            remaining = points_requested
            for entry in entries:
                if remaining <= 0:
                    break
                entry_points = int(entry.points or 0)
                if entry_points <= 0:
                    continue

                if entry_points <= remaining:
                    taken = self._consume_whole(entry, consumer_reservation_id)
                else:
                    taken = self._consume_split(
                        entry, entry_points, remaining, user_id, consumer_reservation_id
                    )

                if taken == 0:
                    race_entry_id = entry.id
                    break
                consumed += taken
                remaining -= taken

            if race_entry_id is not None:
                self.reservation_repository.set_loyalty_points_used(
                    consumer_reservation_id, consumed
                )

        if race_entry_id is not None:
            prometheus_metrics.inc_loyalty_race()
            self.logger.error(
                "Loyalty entry consumed concurrently; reservation kept with corrected points",
                extra={
                    "reservation_id": consumer_reservation_id,
                    "user_id": user_id,
                    "entry_id": race_entry_id,
                    "requested_points": points_requested,
                    "consumed_points": consumed,
                },
            )
            raise LoyaltyConsumptionError(
                reservation_id=consumer_reservation_id,
                requested_points=points_requested,
                consumed_points=consumed,
            )

        self.log_operation(
            "loyalty_consumed",
            user_id=user_id,
            reservation_id=consumer_reservation_id,
            points=consumed,
        )
        return ConsumptionResult(requested=points_requested, consumed=consumed)

    def _consume_whole(self, entry: LoyaltyPointsEntry, reservation_id: int) -> int:
        points = int(entry.points)
        if self.loyalty_repository.mark_used(entry.id, reservation_id) == 0:
            return 0
        return points

    def _consume_split(
        self,
        entry: LoyaltyPointsEntry,
        entry_points: int,
        needed: int,
        user_id: int,
        reservation_id: int,
    ) -> int:
        if self.loyalty_repository.decrement_points(entry.id, entry_points, needed) == 0:
            return 0
        self.loyalty_repository.add_consumed_entry(
            user_id=user_id,
            points=needed,
            expires_at=entry.expires_at,
            reservation_id=reservation_id,
        )
        return needed

    @staticmethod
    def points_for_price(price: Decimal) -> int:
        """One point per ``loyalty_points_divisor`` currency units charged, rounded down."""
        if price is None or Decimal(price) <= 0:
            return 0
        divisor = Decimal(settings.loyalty_points_divisor)
        return int((Decimal(price) / divisor).to_integral_value(rounding=ROUND_FLOOR))

    @BaseService.measure_operation("loyalty_grant")
    def grant(
        self,
        user_id: int,
        points: int,
        reservation_id: Optional[int],
        expires_in_days: Optional[int] = None,
    ) -> Optional[LoyaltyPointsEntry]:
        """Insert a fresh spendable entry. Zero points grants nothing."""
        if points <= 0:
            return None
        if expires_in_days is None:
            expires_in_days = settings.loyalty_points_expiry_days
        expires_at: date = self.calendar.today() + timedelta(days=expires_in_days)
        with self.transaction():
            entry = self.loyalty_repository.add_grant(
                user_id=user_id,
                points=points,
                expires_at=expires_at,
                reservation_id=reservation_id,
            )
        self.log_operation(
            "loyalty_granted", user_id=user_id, reservation_id=reservation_id, points=points
        )
        return entry

    @BaseService.measure_operation("loyalty_revoke_for_reservation")
    def revoke_for_reservation(self, reservation_id: int, *, use_transaction: bool = True) -> int:
        now = datetime.now(timezone.utc)
        if use_transaction:
            with self.transaction():
                return self.loyalty_repository.revoke_for_reservation(reservation_id, now)
        return self.loyalty_repository.revoke_for_reservation(reservation_id, now)

    def loyalty_level(self, user_id: int) -> LoyaltyLevel:
        count = self.reservation_repository.count_confirmed_for_user(user_id)
        return LoyaltyLevel.for_reservation_count(count)
