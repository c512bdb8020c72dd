# studio_booking/core/exceptions.py
"""
Domain-specific exceptions for the studio booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Every rejection carries a human-readable reason plus structured details.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is malformed. No side effects have happened."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedException(DomainException):
    """Raised when the caller is neither owner, guest-token holder nor admin."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller is known but the resource is off limits."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictException(DomainException):
    """Raised when a write lost a race. Safe to retry with fresh data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated. Not retryable as-is."""

    status_code = HTTP_422_UNPROCESSABLE


class PartialFailureException(DomainException):
    """Raised when a write succeeded but a dependent write could not be completed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamServiceException(DomainException):
    """Raised when an external collaborator is unreachable or declines."""

    status_code = status.HTTP_502_BAD_GATEWAY


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class SlotUnavailableException(ConflictException):
    """Raised when the requested (date, time) slot is already taken or closed."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message
            or "The selected time slot is no longer available. Please choose another slot.",
            code="SLOT_UNAVAILABLE",
            details=details or {},
        )


class ConcurrentModificationException(ConflictException):
    """Raised when an optimistic-lock guarded write affects zero rows."""

    def __init__(self, reservation_id: int, expected_version: int):
        super().__init__(
            message="The reservation was changed by another request. Please reload and try again.",
            code="RESERVATION_CHANGED",
            details={
                "reservation_id": reservation_id,
                "expected_reschedule_count": expected_version,
            },
        )


class InsufficientNoticeException(BusinessRuleException):
    """Raised when a change is requested with less than the required business days of notice."""

    def __init__(self, action: str, required_days: int, remaining_days: int):
        plural = "" if remaining_days == 1 else "s"
        super().__init__(
            message=(
                f"{action.capitalize()} is only available with at least {required_days} "
                f"business days of notice. {remaining_days} business day{plural} remaining."
            ),
            code="INSUFFICIENT_NOTICE",
            details={
                "action": action,
                "required_business_days": required_days,
                "remaining_business_days": remaining_days,
            },
        )


class RescheduleLimitException(BusinessRuleException):
    """Raised when a customer tries to reschedule more than allowed."""

    def __init__(self, max_reschedules: int, reschedule_count: int):
        super().__init__(
            message=(
                f"Only {max_reschedules} reschedule per reservation is allowed. "
                "You have already used it."
            ),
            code="RESCHEDULE_LIMIT_REACHED",
            details={
                "max_reschedules": max_reschedules,
                "reschedule_count": reschedule_count,
            },
        )


class ReservationNotActiveException(BusinessRuleException):
    """Raised when a reservation is not in the confirmed state."""

    def __init__(self, action: str, current_status: str):
        super().__init__(
            message=f"Only confirmed reservations can be {action}. Current status: {current_status}",
            code="RESERVATION_NOT_ACTIVE",
            details={"action": action, "status": current_status},
        )


class InsufficientPointsException(BusinessRuleException):
    """Raised before any write when a user asks for more points than they hold."""

    def __init__(self, requested: int, available: int):
        super().__init__(
            message=(
                f"Not enough loyalty points. Requested {requested} points, "
                f"available balance: {available} points."
            ),
            code="INSUFFICIENT_POINTS",
            details={"requested_points": requested, "available_points": available},
        )


class LoyaltyConsumptionError(PartialFailureException):
    """
    Raised when a ledger entry was spent concurrently after the reservation
    row already exists. The reservation stands; its points-used field has been
    corrected to what was actually consumed.
    """

    def __init__(self, reservation_id: int, requested_points: int, consumed_points: int):
        super().__init__(
            message=(
                "Loyalty points are no longer available (another reservation used them). "
                "The reservation was created; contact support if your balance looks wrong."
            ),
            code="LOYALTY_CONSUMPTION_INCOMPLETE",
            details={
                "reservation_id": reservation_id,
                "requested_points": requested_points,
                "consumed_points": consumed_points,
            },
        )


class PaymentProcessorError(UpstreamServiceException):
    """Raised when the payment processor is unreachable or declines a charge."""

    def __init__(self, reason: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Payment could not be processed: {reason}",
            code="PAYMENT_FAILED",
            details=details or {"reason": reason},
        )


class GuestTokenError(UnauthorizedException):
    """Raised when a guest token is malformed, forged or expired."""

    def __init__(self, reason: str):
        super().__init__(
            message=reason,
            code="INVALID_GUEST_TOKEN",
            details={"reason": reason},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
