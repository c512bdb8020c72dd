from datetime import datetime, timedelta, timezone

import pytest

from studio_booking.repositories.loyalty_repository import LoyaltyRepository
from tests.factories import TODAY, add_points, make_reservation, make_user


@pytest.fixture
def repository(db) -> LoyaltyRepository:
    return LoyaltyRepository(db)


@pytest.fixture
def member(db):
    return make_user(db)


def test_balance_ignores_used_revoked_and_expired(db, repository, member) -> None:
    add_points(db, member, 100)
    add_points(db, member, 20, used=True)
    add_points(db, member, 30, revoked=True)
    add_points(db, member, 40, expires_at=TODAY - timedelta(days=1))
    add_points(db, member, 5, expires_at=TODAY)

    assert repository.get_balance(member.id, TODAY) == 105
    assert [entry.points for entry in repository.get_eligible_entries(member.id, TODAY)] == [
        100,
        5,
    ]


def test_mark_used_only_once(db, repository, member) -> None:
    entry = add_points(db, member, 50)
    reservation = make_reservation(db, user_id=member.id)

    assert repository.mark_used(entry.id, reservation.id) == 1
    assert repository.mark_used(entry.id, reservation.id) == 0


def test_decrement_requires_expected_points(db, repository, member) -> None:
    entry = add_points(db, member, 50)

    assert repository.decrement_points(entry.id, 40, 10) == 0
    assert repository.decrement_points(entry.id, 50, 10) == 1
    db.commit()
    db.refresh(entry)
    assert entry.points == 40


def test_revoke_leaves_used_entries(db, repository, member) -> None:
    reservation = make_reservation(db, user_id=member.id)
    open_entry = add_points(db, member, 10, reservation_id=reservation.id)
    add_points(db, member, 10, reservation_id=reservation.id, used=True)

    assert repository.revoke_for_reservation(reservation.id, datetime.now(timezone.utc)) == 1
    db.commit()
    db.refresh(open_entry)
    assert open_entry.revoked is True
