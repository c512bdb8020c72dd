"""
Discount code validation and redemption.

The usage counter is only ever moved by a single guarded
``current_uses = current_uses + 1 WHERE current_uses < max_uses`` statement,
never read-then-write.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.business_calendar import BusinessCalendar
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from ..models.discount_code import DiscountCode, DiscountCodeUse
from ..repositories.factory import RepositoryFactory
from .base import BaseService


@dataclass(frozen=True)
class ValidatedDiscountCode:
    id: int
    code: str
    description: Optional[str]
    discount_percentage: Decimal


class DiscountCodeService(BaseService):
    def __init__(self, db: Session, calendar: Optional[BusinessCalendar] = None):
        super().__init__(db)
        self.calendar = calendar or BusinessCalendar()
        self.discount_code_repository = RepositoryFactory.create_discount_code_repository(db)

    @staticmethod
    def normalize(code: str) -> str:
        if not code or not code.strip():
            raise ValidationException("Discount code is required")
        return code.strip().upper()

    @BaseService.measure_operation("validate_discount_code")
    def validate(self, code: str, email: Optional[str] = None) -> ValidatedDiscountCode:
        """
        Check that a code can be applied right now by ``email``.

        Raises:
            NotFoundException: unknown code
            BusinessRuleException: inactive, outside its window, exhausted, or
                already used by this email
        """
        normalized = self.normalize(code)
        discount = self.discount_code_repository.get_by_code(normalized)
        if discount is None:
            raise NotFoundException(
                "Discount code is not valid", code="DISCOUNT_CODE_NOT_FOUND"
            )
        self._check_redeemable(discount, email)
        return ValidatedDiscountCode(
            id=discount.id,
            code=discount.code,
            description=discount.description,
            discount_percentage=Decimal(discount.discount_percentage),
        )

    def _check_redeemable(self, discount: DiscountCode, email: Optional[str]) -> None:
        today = self.calendar.today()
        if not discount.active:
            raise BusinessRuleException(
                "This discount code is not active", code="DISCOUNT_CODE_INACTIVE"
            )
        if today < discount.valid_from:
            raise BusinessRuleException(
                f"This discount code is valid starting {discount.valid_from.isoformat()}",
                code="DISCOUNT_CODE_NOT_STARTED",
                details={"valid_from": discount.valid_from.isoformat()},
            )
        if today > discount.valid_until:
            raise BusinessRuleException(
                "This discount code has expired",
                code="DISCOUNT_CODE_EXPIRED",
                details={"valid_until": discount.valid_until.isoformat()},
            )
        if discount.current_uses >= discount.max_uses:
            raise BusinessRuleException(
                "This discount code has reached its usage limit",
                code="DISCOUNT_CODE_EXHAUSTED",
                details={"max_uses": discount.max_uses},
            )
        if email and email.strip() and self.discount_code_repository.has_email_used(
            discount.id, email
        ):
            raise BusinessRuleException(
                "You have already used this discount code",
                code="DISCOUNT_CODE_ALREADY_USED",
            )

    @BaseService.measure_operation("redeem_discount_code")
    def redeem(
        self,
        code: str,
        *,
        reservation_id: int,
        email: str,
        user_id: Optional[int],
    ) -> DiscountCodeUse:
        """
        Record one redemption and bump the counter atomically.

        Raises:
            ConflictException: this email already redeemed the code
            BusinessRuleException: the cap was reached by a concurrent redemption
        """
        validated = self.validate(code, email)
        with self.transaction():
            try:
                use = self.discount_code_repository.record_use(
                    discount_code_id=validated.id,
                    email=email,
                    reservation_id=reservation_id,
                    user_id=user_id,
                )
            except IntegrityError:
                raise ConflictException(
                    "You have already used this discount code",
                    code="DISCOUNT_CODE_ALREADY_USED",
                )
            if self.discount_code_repository.increment_uses(validated.id) == 0:
                raise BusinessRuleException(
                    "This discount code has reached its usage limit",
                    code="DISCOUNT_CODE_EXHAUSTED",
                )
        self.log_operation(
            "discount_code_redeemed", code=validated.code, reservation_id=reservation_id
        )
        return use
