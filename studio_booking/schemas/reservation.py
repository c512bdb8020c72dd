# studio_booking/schemas/reservation.py
"""
Reservation schemas.

Request models validate shape and formats only; every business rule (slot,
lead time, balances) is enforced by the services.
"""

import datetime
from datetime import time
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from ..core.enums import PaymentMethod
from .base import Money, StandardizedModel, StrictRequestModel, ensure_date_only, parse_hhmm

# Type aliases; several models have a field literally named "date"
DateType = datetime.date
DateTimeType = datetime.datetime


class _SlotFields(StrictRequestModel):
    date: DateType = Field(..., description="Session date (YYYY-MM-DD)")
    start_time: time = Field(..., description="Session start (HH:MM)")

    @field_validator("date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "date")

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_start_time(cls, v: object) -> object:
        return parse_hhmm(v, "start_time")


class _ContactFields(_SlotFields):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=30)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("name", "phone", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()
        return v


class ReservationCreate(_ContactFields):
    """Customer checkout. ``payment_id`` is the processor order already captured."""

    price: Money = Field(..., ge=0)
    original_price: Money = Field(..., ge=0)
    payment_id: str = Field(..., min_length=1, max_length=255)
    payment_method: Literal["conekta"] = PaymentMethod.CONEKTA.value

    discount_amount: Money = Field(Decimal("0"), ge=0)
    last_minute_discount: Money = Field(Decimal("0"), ge=0)
    loyalty_discount: Money = Field(Decimal("0"), ge=0)
    loyalty_points_used: int = Field(0, ge=0)
    credits_used: Money = Field(Decimal("0"), ge=0)
    referral_discount: Money = Field(Decimal("0"), ge=0)
    discount_code: Optional[str] = Field(None, max_length=50)
    discount_code_discount: Money = Field(Decimal("0"), ge=0)

    @field_validator("discount_code", mode="before")
    @classmethod
    def _normalize_code(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper() or None
        return v


class AdminReservationCreate(_ContactFields):
    """Booking taken by staff and paid at the studio."""

    price: Money = Field(..., gt=0)
    payment_method: Literal["efectivo", "transferencia"]
    send_email: bool = False


class RescheduleRequest(_SlotFields):
    pass


class RescheduleCompleteRequest(_SlotFields):
    """
    Second step of a reschedule that costs more.

    Customers supply either ``payment_id`` (an order already captured) or
    ``payment_token`` (to be captured now). Admins may instead record a
    ``settlement_method`` for money collected outside the processor.
    """

    payment_id: Optional[str] = Field(None, max_length=255)
    payment_token: Optional[str] = Field(None, max_length=255)
    settlement_method: Optional[Literal["efectivo", "transferencia", "pendiente"]] = None

    @model_validator(mode="after")
    def _one_payment_source(self) -> "RescheduleCompleteRequest":
        provided = [v for v in (self.payment_id, self.payment_token, self.settlement_method) if v]
        if len(provided) > 1:
            raise ValueError("Provide only one of payment_id, payment_token or settlement_method")
        return self


class CancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


# Responses


class ReservationResponse(StandardizedModel):
    id: int
    user_id: Optional[int] = None
    email: str
    name: str
    phone: str
    date: DateType
    start_time: time
    end_time: time
    price: Money
    original_price: Money
    status: str
    payment_method: str
    reschedule_count: int
    original_date: Optional[DateType] = None
    original_start_time: Optional[time] = None
    additional_payment_amount: Optional[Money] = None
    additional_payment_method: Optional[str] = None
    loyalty_points_used: int = 0
    discount_code: Optional[str] = None
    refund_amount: Optional[Money] = None
    refund_status: Optional[str] = None
    refund_id: Optional[str] = None
    cancelled_at: Optional[DateTimeType] = None


class ReservationCreateResponse(StandardizedModel):
    reservation_id: int
    guest_token: Optional[str] = None
    guest_reservation_url: Optional[str] = None
    loyalty_level_changed: bool = False
    new_loyalty_level: Optional[str] = None
    points_granted: int = 0


class RescheduleResponse(StandardizedModel):
    requires_payment: bool
    message: str
    additional_amount: Optional[Money] = None
    new_price: Optional[Money] = None
    current_price: Optional[Money] = None
    reservation: Optional[ReservationResponse] = None


class CancellationResponse(StandardizedModel):
    message: str
    refund_amount: Money
    refund_status: Optional[str] = None
    refund_id: Optional[str] = None
    total_card_paid: Money
    reservation: ReservationResponse


class DayAvailabilityResponse(StandardizedModel):
    date: DateType
    is_closed: bool
    price: Money
    booked_start_times: List[time]
    start_time: Optional[time] = None
    available: Optional[bool] = None
