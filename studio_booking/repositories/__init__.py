"""
Repository layer for the studio booking engine.

Usage:
    from studio_booking.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_reservation_repository(db)
    taken = repository.is_slot_occupied(day, start)
"""

from .base_repository import BaseRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "RepositoryFactory"]
