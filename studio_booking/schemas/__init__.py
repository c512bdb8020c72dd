"""
Pydantic schemas for the studio booking API.

Request models only check shape; business rules live in the services.
"""

from .base import Money, StandardizedModel, StrictRequestModel
from .discount_code import DiscountCodeValidateRequest, DiscountCodeValidateResponse
from .loyalty import LoyaltyBalanceResponse
from .reservation import (
    AdminReservationCreate,
    CancellationResponse,
    CancelRequest,
    DayAvailabilityResponse,
    RescheduleCompleteRequest,
    RescheduleRequest,
    RescheduleResponse,
    ReservationCreate,
    ReservationCreateResponse,
    ReservationResponse,
)

__all__ = [
    "Money",
    "StandardizedModel",
    "StrictRequestModel",
    "DiscountCodeValidateRequest",
    "DiscountCodeValidateResponse",
    "LoyaltyBalanceResponse",
    "AdminReservationCreate",
    "CancelRequest",
    "CancellationResponse",
    "DayAvailabilityResponse",
    "RescheduleCompleteRequest",
    "RescheduleRequest",
    "RescheduleResponse",
    "ReservationCreate",
    "ReservationCreateResponse",
    "ReservationResponse",
]
