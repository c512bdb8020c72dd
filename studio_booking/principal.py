"""Caller identity passed from the transport layer into services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Actor:
    """
    Who is making a request.

    ``user_id`` comes from a verified session token, ``is_admin`` is read from
    the users table for this request only, and ``guest_token`` is whatever the
    caller presented (unverified until AccessGuard checks it).
    """

    user_id: Optional[int] = None
    email: Optional[str] = None
    is_admin: bool = False
    guest_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def anonymous(cls, guest_token: Optional[str] = None) -> "Actor":
        return cls(guest_token=guest_token)
