# studio_booking/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_actor, require_admin, require_authenticated
from .database import get_db
from .services import (
    get_calendar,
    get_cancellation_service,
    get_discount_code_service,
    get_guest_token_service,
    get_loyalty_ledger_service,
    get_notifications,
    get_processor,
    get_reschedule_service,
    get_reservation_service,
)

__all__ = [
    # Auth
    "get_current_actor",
    "require_authenticated",
    "require_admin",
    # Database
    "get_db",
    # Collaborators
    "get_calendar",
    "get_processor",
    "get_notifications",
    "get_guest_token_service",
    # Services
    "get_reservation_service",
    "get_reschedule_service",
    "get_cancellation_service",
    "get_loyalty_ledger_service",
    "get_discount_code_service",
]
