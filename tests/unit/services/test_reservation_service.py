from datetime import date, time
from decimal import Decimal

import pytest

from studio_booking.core.enums import LoyaltyLevel
from studio_booking.core.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    InsufficientPointsException,
    LoyaltyConsumptionError,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from studio_booking.models.discount_code import DiscountCode, DiscountCodeUse
from studio_booking.models.loyalty import LoyaltyPointsEntry
from studio_booking.models.reservation import Reservation
from studio_booking.principal import Actor
from studio_booking.schemas.reservation import AdminReservationCreate, ReservationCreate
from studio_booking.services.reservation_service import ReservationService
from tests.factories import (
    NEXT_MONDAY,
    THIS_FRIDAY,
    add_points,
    admin_actor,
    make_discount_code,
    make_reservation,
    make_user,
    owner_actor,
    set_day,
)


@pytest.fixture
def service(db, calendar, token_service, notification_service) -> ReservationService:
    return ReservationService(
        db,
        calendar=calendar,
        token_service=token_service,
        notification_service=notification_service,
    )


def checkout(**overrides) -> ReservationCreate:
    payload = {
        "email": "ana@example.com",
        "name": "Ana",
        "phone": "8110000000",
        "date": NEXT_MONDAY.isoformat(),
        "start_time": "10:00",
        "price": "1500",
        "original_price": "1500",
        "payment_id": "ord_checkout",
    }
    payload.update(overrides)
    return ReservationCreate.model_validate(payload)


def manual_booking(**overrides) -> AdminReservationCreate:
    payload = {
        "email": "walkin@example.com",
        "name": "Walk In",
        "phone": "8119999999",
        "date": NEXT_MONDAY.isoformat(),
        "start_time": "12:00",
        "price": "1500",
        "payment_method": "efectivo",
    }
    payload.update(overrides)
    return AdminReservationCreate.model_validate(payload)


class TestGuestCheckout:
    def test_guest_booking_gets_token_and_manage_url(self, db, service, notifier) -> None:
        result = service.create_reservation(
            checkout(email="Nueva@Example.com"), Actor.anonymous()
        )

        reservation = result.reservation
        assert reservation.id is not None
        assert reservation.user_id is None
        assert reservation.email == "nueva@example.com"
        assert reservation.status == "confirmed"
        assert reservation.end_time == time(10, 45)
        assert reservation.payment_method == "conekta"
        assert result.guest_token
        assert result.guest_reservation_url.startswith("https://studio.test")
        assert result.points_granted == 0

        assert notifier.kinds() == ["confirmation"]
        assert notifier.sent[0][1]["manage_url"] == result.guest_reservation_url

    def test_email_match_links_user_without_spending_points(self, db, service, user) -> None:
        add_points(db, user, 100)

        result = service.create_reservation(
            checkout(loyalty_points_used=50, loyalty_discount="50"), Actor.anonymous()
        )

        assert result.reservation.user_id == user.id
        assert result.reservation.loyalty_points_used == 0
        assert result.reservation.loyalty_discount == Decimal("0")
        assert result.points_granted == 0
        assert service.ledger.balance(user.id) == 100

    def test_past_date_is_rejected(self, service) -> None:
        with pytest.raises(ValidationException):
            service.create_reservation(checkout(date="2026-05-29"), Actor.anonymous())


class TestAuthenticatedCheckout:
    def test_grants_points_and_reports_level_change(self, db, service, user) -> None:
        result = service.create_reservation(checkout(), owner_actor(user))

        assert result.guest_token is None
        assert result.points_granted == 150
        assert result.loyalty_level_changed is True
        assert result.new_loyalty_level == LoyaltyLevel.FRECUENTE
        assert service.ledger.balance(user.id) == 150

    def test_no_level_change_between_thresholds(self, db, service, user) -> None:
        make_reservation(db, user_id=user.id, start_time=time(9, 0))

        result = service.create_reservation(checkout(), owner_actor(user))

        assert result.loyalty_level_changed is False
        assert result.new_loyalty_level is None

    def test_spends_requested_points(self, db, service, user) -> None:
        add_points(db, user, 100)

        result = service.create_reservation(
            checkout(price="1440", loyalty_points_used=60, loyalty_discount="60"),
            owner_actor(user),
        )

        assert result.reservation.loyalty_points_used == 60
        assert result.points_granted == 144
        assert service.ledger.balance(user.id) == 40 + 144

    def test_insufficient_points_rejects_before_insert(self, db, service, user) -> None:
        add_points(db, user, 10)

        with pytest.raises(InsufficientPointsException):
            service.create_reservation(checkout(loyalty_points_used=50), owner_actor(user))

        assert db.query(Reservation).count() == 0

    def test_points_drained_after_check_keep_booking_with_zero_points(
        self, db, service, user, monkeypatch
    ) -> None:
        add_points(db, user, 50)
        check = service.ledger.ensure_sufficient

        def check_then_spend_elsewhere(user_id, points):
            available = check(user_id, points)
            db.query(LoyaltyPointsEntry).filter(LoyaltyPointsEntry.user_id == user_id).update(
                {"used": True}
            )
            db.commit()
            return available

        monkeypatch.setattr(service.ledger, "ensure_sufficient", check_then_spend_elsewhere)

        with pytest.raises(LoyaltyConsumptionError) as exc_info:
            service.create_reservation(
                checkout(loyalty_points_used=50, loyalty_discount="50"), owner_actor(user)
            )

        reservation = db.query(Reservation).one()
        db.refresh(reservation)
        assert reservation.is_confirmed
        assert reservation.loyalty_points_used == 0
        assert exc_info.value.details["reservation_id"] == reservation.id
        assert exc_info.value.details["consumed_points"] == 0

    def test_free_booking_grants_nothing(self, db, service, user) -> None:
        result = service.create_reservation(checkout(price="0"), owner_actor(user))
        assert result.points_granted == 0

    def test_fills_missing_profile_fields(self, db, service) -> None:
        member = make_user(db, email="sin@example.com", name=None, phone=None)

        service.create_reservation(
            checkout(email="sin@example.com", name="Sofia", phone="8112223333"),
            owner_actor(member),
        )

        db.refresh(member)
        assert member.name == "Sofia"
        assert member.phone == "8112223333"


class TestSlotProtection:
    def test_taken_slot_is_rejected(self, db, service) -> None:
        make_reservation(db, email="otra@example.com")
        with pytest.raises(SlotUnavailableException):
            service.create_reservation(checkout(), Actor.anonymous())

    def test_closed_day_is_rejected(self, db, service) -> None:
        set_day(db, NEXT_MONDAY, is_closed=True)
        with pytest.raises(SlotUnavailableException):
            service.create_reservation(checkout(), Actor.anonymous())

    def test_unique_index_catches_a_racing_insert(self, db, service, monkeypatch) -> None:
        make_reservation(db, email="otra@example.com")
        monkeypatch.setattr(service.slot_service, "ensure_available", lambda *args: None)

        with pytest.raises(SlotUnavailableException):
            service.create_reservation(checkout(), Actor.anonymous())

        assert db.query(Reservation).count() == 1

    def test_cancelled_slot_can_be_booked_again(self, db, service) -> None:
        make_reservation(db, email="otra@example.com", status="cancelled")

        result = service.create_reservation(checkout(), Actor.anonymous())

        assert result.reservation.status == "confirmed"


class TestDiscountCodes:
    def test_code_is_redeemed_after_insert(self, db, service) -> None:
        make_discount_code(db)

        result = service.create_reservation(
            checkout(discount_code="verano10", discount_code_discount="150", price="1350"),
            Actor.anonymous(),
        )

        assert result.reservation.discount_code == "VERANO10"
        assert db.query(DiscountCode).one().current_uses == 1
        use = db.query(DiscountCodeUse).one()
        assert use.email == "ana@example.com"
        assert use.reservation_id == result.reservation.id

    def test_unknown_code_rejects_before_insert(self, db, service) -> None:
        with pytest.raises(NotFoundException):
            service.create_reservation(checkout(discount_code="NOPE"), Actor.anonymous())
        assert db.query(Reservation).count() == 0

    def test_code_already_used_by_email_rejects(self, db, service) -> None:
        make_discount_code(db)
        service.create_reservation(checkout(discount_code="VERANO10"), Actor.anonymous())

        with pytest.raises(BusinessRuleException):
            service.create_reservation(
                checkout(discount_code="VERANO10", start_time="12:00"), Actor.anonymous()
            )
        assert db.query(Reservation).count() == 1


class TestAdminReservations:
    def test_manual_booking_with_email(self, db, service, admin_user, notifier) -> None:
        result = service.create_admin_reservation(
            manual_booking(send_email=True), admin_actor(admin_user)
        )

        reservation = result.reservation
        assert reservation.created_by_user_id == admin_user.id
        assert reservation.payment_method == "efectivo"
        assert reservation.payment_id is None
        assert reservation.original_price == Decimal("1500")
        assert result.guest_token
        assert notifier.kinds() == ["confirmation"]

    def test_manual_booking_links_registered_user(self, db, service, user, admin_user) -> None:
        result = service.create_admin_reservation(
            manual_booking(email="ana@example.com", payment_method="transferencia"),
            admin_actor(admin_user),
        )
        assert result.reservation.user_id == user.id

    def test_manual_booking_without_email_sends_nothing(
        self, service, admin_user, notifier
    ) -> None:
        result = service.create_admin_reservation(manual_booking(), admin_actor(admin_user))
        assert result.guest_token is None
        assert notifier.kinds() == []

    def test_non_admin_is_forbidden(self, service, user) -> None:
        with pytest.raises(ForbiddenException):
            service.create_admin_reservation(manual_booking(), owner_actor(user))


class TestReads:
    def test_guest_lookup(self, db, service, token_service) -> None:
        reservation = make_reservation(db, email="guest@example.com")
        token = token_service.issue("guest@example.com", reservation.id)

        assert service.get_guest_reservation(token).id == reservation.id

    def test_guest_lookup_of_cancelled_reservation_is_forbidden(
        self, db, service, token_service
    ) -> None:
        reservation = make_reservation(db, email="guest@example.com", status="cancelled")
        token = token_service.issue("guest@example.com", reservation.id)

        with pytest.raises(ForbiddenException) as exc_info:
            service.get_guest_reservation(token)
        assert exc_info.value.code == "RESERVATION_NOT_MANAGEABLE"

    def test_day_availability_reports_price_and_bookings(self, db, service) -> None:
        make_reservation(db, date=THIS_FRIDAY, start_time=time(16, 0))

        day = service.get_day_availability(THIS_FRIDAY)

        assert day["price"] == Decimal("1800")
        assert day["booked_start_times"] == [time(16, 0)]
        assert day["is_closed"] is False
        assert service.check_availability(THIS_FRIDAY, time(16, 0)) is False
        assert service.check_availability(THIS_FRIDAY, time(17, 0)) is True

    def test_holiday_price(self, service) -> None:
        assert service.get_day_availability(date(2026, 9, 16))["price"] == Decimal("2000")


def test_notifier_failure_does_not_fail_booking(db, service, notifier) -> None:
    notifier.fail = True

    result = service.create_reservation(checkout(), Actor.anonymous())

    assert result.reservation.id is not None
    assert db.query(Reservation).count() == 1
