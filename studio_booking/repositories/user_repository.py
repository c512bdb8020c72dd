# studio_booking/repositories/user_repository.py
"""User repository."""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        return (
            self._build_query()
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def is_admin(self, user_id: int) -> bool:
        """Read the admin flag straight from the table; never cached."""
        flag = self._execute_scalar(self.db.query(User.is_admin).filter(User.id == user_id))
        return bool(flag)

    def fill_missing_profile(
        self, user_id: int, *, name: Optional[str], phone: Optional[str]
    ) -> bool:
        """Set name/phone only where the profile is empty. Returns True if anything changed."""
        user = self.get_by_id(user_id)
        if user is None:
            return False

        changed = False
        if name and not user.name:
            user.name = name
            changed = True
        if phone and not user.phone:
            user.phone = phone
            changed = True
        if changed:
            self.db.flush()
        return changed
