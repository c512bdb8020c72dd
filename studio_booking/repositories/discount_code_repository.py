"""Discount code repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.discount_code import DiscountCode, DiscountCodeUse
from .base_repository import BaseRepository


class DiscountCodeRepository(BaseRepository[DiscountCode]):
    def __init__(self, db: Session):
        super().__init__(db, DiscountCode)

    def get_by_code(self, code: str) -> Optional[DiscountCode]:
        return self.find_one_by(code=code.strip().upper())

    def has_email_used(self, discount_code_id: int, email: str) -> bool:
        return (
            self.db.query(DiscountCodeUse.id)
            .filter(
                DiscountCodeUse.discount_code_id == discount_code_id,
                func.lower(DiscountCodeUse.email) == email.strip().lower(),
            )
            .first()
            is not None
        )

    def record_use(
        self,
        *,
        discount_code_id: int,
        email: str,
        reservation_id: Optional[int],
        user_id: Optional[int],
    ) -> DiscountCodeUse:
        use = DiscountCodeUse(
            discount_code_id=discount_code_id,
            email=email.strip().lower(),
            reservation_id=reservation_id,
            user_id=user_id,
        )
        self.db.add(use)
        self.db.flush()
        return use

    def increment_uses(self, discount_code_id: int) -> int:
        """Atomic ``current_uses + 1`` that refuses to pass ``max_uses``."""
        return self._guarded_update(
            [
                DiscountCode.id == discount_code_id,
                DiscountCode.current_uses < DiscountCode.max_uses,
            ],
            {"current_uses": DiscountCode.current_uses + 1},
        )
