# studio_booking/routes/v1/reservations.py
"""
Reservation routes - API v1

Versioned reservation endpoints under /api/v1/reservations.
All business logic delegated to the reservation, reschedule and
cancellation services.

Endpoints:
    POST / - Create a reservation (checkout already paid)
    GET /availability - Day availability and price, optionally one slot
    GET /loyalty/balance - Current user's spendable points
    POST /discount-codes/validate - Check a discount code
    POST /admin/reservations - Manual booking paid at the studio (admin)
    GET /guest/{token} - Reservation behind a guest token
    GET /{reservation_id} - Reservation details
    POST /{reservation_id}/reschedule - Start a reschedule
    POST /{reservation_id}/reschedule/complete - Finish a paid reschedule
    POST /{reservation_id}/cancel - Cancel and record the refund
"""

import asyncio
from datetime import date, time
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...api.dependencies import (
    get_cancellation_service,
    get_current_actor,
    get_discount_code_service,
    get_loyalty_ledger_service,
    get_reschedule_service,
    get_reservation_service,
    require_admin,
    require_authenticated,
)
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.discount_code import DiscountCodeValidateRequest, DiscountCodeValidateResponse
from ...schemas.loyalty import LoyaltyBalanceResponse
from ...schemas.reservation import (
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
from ...services.cancellation_service import CancellationService
from ...services.discount_code_service import DiscountCodeService
from ...services.loyalty_ledger_service import LoyaltyLedgerService
from ...services.reschedule_service import RescheduleOutcome, RescheduleService
from ...services.reservation_service import ReservationCreationResult, ReservationService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["reservations-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _creation_response(result: ReservationCreationResult) -> ReservationCreateResponse:
    return ReservationCreateResponse(
        reservation_id=result.reservation.id,
        guest_token=result.guest_token,
        guest_reservation_url=result.guest_reservation_url,
        loyalty_level_changed=result.loyalty_level_changed,
        new_loyalty_level=result.new_loyalty_level.value if result.new_loyalty_level else None,
        points_granted=result.points_granted,
    )


def _reschedule_response(outcome: RescheduleOutcome) -> RescheduleResponse:
    return RescheduleResponse(
        requires_payment=outcome.requires_payment,
        message=outcome.message,
        additional_amount=outcome.additional_amount,
        new_price=outcome.new_price,
        current_price=outcome.current_price,
        reservation=ReservationResponse.model_validate(outcome.reservation),
    )


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("", response_model=ReservationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationCreateResponse:
    """Create a reservation for a slot the customer has already paid."""
    try:
        result = await asyncio.to_thread(reservation_service.create_reservation, payload, actor)
        return _creation_response(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/availability", response_model=DayAvailabilityResponse)
async def get_availability(
    day: date = Query(..., alias="date"),
    start_time: Optional[time] = Query(None),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> DayAvailabilityResponse:
    """Booked start times and price for a date; pass start_time to check one slot."""
    try:
        data = await asyncio.to_thread(reservation_service.get_day_availability, day)
        if start_time is not None:
            data["start_time"] = start_time
            data["available"] = await asyncio.to_thread(
                reservation_service.check_availability, day, start_time
            )
        return DayAvailabilityResponse(**data)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/loyalty/balance", response_model=LoyaltyBalanceResponse)
async def get_loyalty_balance(
    actor: Actor = Depends(require_authenticated),
    ledger: LoyaltyLedgerService = Depends(get_loyalty_ledger_service),
) -> LoyaltyBalanceResponse:
    try:
        points = await asyncio.to_thread(ledger.balance, actor.user_id)
        level = await asyncio.to_thread(ledger.loyalty_level, actor.user_id)
        return LoyaltyBalanceResponse(user_id=actor.user_id, points=points, level=level.value)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/discount-codes/validate", response_model=DiscountCodeValidateResponse)
async def validate_discount_code(
    payload: DiscountCodeValidateRequest = Body(...),
    discount_service: DiscountCodeService = Depends(get_discount_code_service),
) -> DiscountCodeValidateResponse:
    try:
        validated = await asyncio.to_thread(
            discount_service.validate, payload.code, str(payload.email) if payload.email else None
        )
        return DiscountCodeValidateResponse(
            code=validated.code,
            description=validated.description,
            discount_percentage=validated.discount_percentage,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/admin/reservations",
    response_model=ReservationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_admin_reservation(
    payload: AdminReservationCreate = Body(...),
    actor: Actor = Depends(require_admin),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationCreateResponse:
    """Manual booking paid in cash or by transfer. Requires admin."""
    try:
        result = await asyncio.to_thread(
            reservation_service.create_admin_reservation, payload, actor
        )
        return _creation_response(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/guest/{token}", response_model=ReservationResponse)
async def get_guest_reservation(
    token: str,
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(reservation_service.get_guest_reservation, token)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Reservation-scoped routes
# ============================================================================


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    actor: Actor = Depends(get_current_actor),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(
            reservation_service.get_reservation, reservation_id, actor
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/reschedule", response_model=RescheduleResponse)
async def request_reschedule(
    reservation_id: int,
    payload: RescheduleRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> RescheduleResponse:
    """
    Move a reservation, or report the extra amount due.

    A response with ``requires_payment=true`` leaves the reservation unchanged;
    call ``/reschedule/complete`` once the difference is paid.
    """
    try:
        outcome = await asyncio.to_thread(
            reschedule_service.request_reschedule,
            reservation_id,
            payload.date,
            payload.start_time,
            actor,
        )
        return _reschedule_response(outcome)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/reschedule/complete", response_model=RescheduleResponse)
async def complete_reschedule(
    reservation_id: int,
    payload: RescheduleCompleteRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> RescheduleResponse:
    try:
        outcome = await asyncio.to_thread(
            lambda: reschedule_service.complete_reschedule(
                reservation_id,
                payload.date,
                payload.start_time,
                actor,
                payment_id=payload.payment_id,
                payment_token=payload.payment_token,
                settlement_method=payload.settlement_method,
            )
        )
        return _reschedule_response(outcome)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/cancel", response_model=CancellationResponse)
async def cancel_reservation(
    reservation_id: int,
    payload: Optional[CancelRequest] = Body(None),
    actor: Actor = Depends(get_current_actor),
    cancellation_service: CancellationService = Depends(get_cancellation_service),
) -> CancellationResponse:
    try:
        outcome = await asyncio.to_thread(
            cancellation_service.cancel,
            reservation_id,
            actor,
            payload.reason if payload else None,
        )
        return CancellationResponse(
            message=outcome.message,
            refund_amount=outcome.policy.refund_amount,
            refund_status=outcome.refund_status,
            refund_id=outcome.refund_id,
            total_card_paid=outcome.policy.total_card_paid,
            reservation=ReservationResponse.model_validate(outcome.reservation),
        )
    except DomainException as e:
        handle_domain_exception(e)
