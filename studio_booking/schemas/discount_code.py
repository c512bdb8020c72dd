# studio_booking/schemas/discount_code.py
"""Discount code schemas."""

from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import Money, StandardizedModel, StrictRequestModel


class DiscountCodeValidateRequest(StrictRequestModel):
    code: str = Field(..., min_length=1, max_length=50)
    email: Optional[EmailStr] = None

    @field_validator("code", mode="before")
    @classmethod
    def _normalize_code(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v


class DiscountCodeValidateResponse(StandardizedModel):
    valid: bool = True
    code: str
    description: Optional[str] = None
    discount_percentage: Money
