"""HTTP surface of /api/v1/reservations, exercised through the FastAPI app."""

from datetime import time

from tests.factories import (
    NEXT_MONDAY,
    THIS_FRIDAY,
    add_points,
    auth_headers,
    make_discount_code,
    make_reservation,
)

BASE = "/api/v1/reservations"


def checkout_body(**overrides):
    body = {
        "email": "guest@example.com",
        "name": "Guest",
        "phone": "8110000000",
        "date": NEXT_MONDAY.isoformat(),
        "start_time": "10:00",
        "price": 1500,
        "original_price": 1500,
        "payment_id": "ord_checkout",
    }
    body.update(overrides)
    return body


class TestCreate:
    def test_guest_checkout(self, client) -> None:
        response = client.post(BASE, json=checkout_body())

        assert response.status_code == 201
        data = response.json()
        assert data["reservation_id"] > 0
        assert data["guest_token"]
        assert data["guest_reservation_url"].startswith("https://studio.test")

    def test_unknown_fields_are_rejected(self, client) -> None:
        response = client.post(BASE, json=checkout_body(total=1))

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_taken_slot_is_a_conflict(self, client, db) -> None:
        make_reservation(db, email="otra@example.com")

        response = client.post(BASE, json=checkout_body())

        assert response.status_code == 409
        assert response.json()["code"] == "SLOT_UNAVAILABLE"

    def test_authenticated_checkout_grants_points(self, client, user) -> None:
        response = client.post(
            BASE, json=checkout_body(email=user.email), headers=auth_headers(user)
        )

        assert response.status_code == 201
        assert response.json()["points_granted"] == 150
        assert response.json()["guest_token"] is None

    def test_invalid_session_token(self, client) -> None:
        response = client.post(
            BASE, json=checkout_body(), headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_SESSION"


class TestAvailability:
    def test_day_and_slot(self, client, db) -> None:
        make_reservation(db, date=THIS_FRIDAY, start_time=time(16, 0))

        response = client.get(
            f"{BASE}/availability", params={"date": THIS_FRIDAY.isoformat(), "start_time": "16:00"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["price"] == 1800.0
        assert data["booked_start_times"] == ["16:00:00"]
        assert data["available"] is False


class TestReadAccess:
    def test_owner_reads_reservation(self, client, db, user) -> None:
        reservation = make_reservation(db, user_id=user.id)

        response = client.get(f"{BASE}/{reservation.id}", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["id"] == reservation.id

    def test_anonymous_caller_is_rejected(self, client, db, user) -> None:
        reservation = make_reservation(db, user_id=user.id)

        response = client.get(f"{BASE}/{reservation.id}")

        assert response.status_code == 401

    def test_unknown_reservation(self, client, user) -> None:
        response = client.get(f"{BASE}/9999", headers=auth_headers(user))
        assert response.status_code == 404

    def test_guest_link(self, client, db, token_service) -> None:
        reservation = make_reservation(db, email="guest@example.com")
        token = token_service.issue("guest@example.com", reservation.id)

        assert client.get(f"{BASE}/guest/{token}").json()["id"] == reservation.id
        assert client.get(f"{BASE}/guest/garbage").status_code == 401


class TestReschedule:
    def test_two_step_paid_reschedule(self, client, db, token_service) -> None:
        reservation = make_reservation(db, email="guest@example.com")
        headers = {"X-Guest-Token": token_service.issue("guest@example.com", reservation.id)}
        target = {"date": "2026-06-12", "start_time": "11:00"}

        first = client.post(f"{BASE}/{reservation.id}/reschedule", json=target, headers=headers)

        assert first.status_code == 200
        assert first.json()["requires_payment"] is True
        assert first.json()["additional_amount"] == 300.0

        second = client.post(
            f"{BASE}/{reservation.id}/reschedule/complete",
            json={**target, "payment_id": "ord_extra"},
            headers=headers,
        )

        assert second.status_code == 200
        body = second.json()
        assert body["requires_payment"] is False
        assert body["reservation"]["date"] == "2026-06-12"
        assert body["reservation"]["price"] == 1800.0
        assert body["reservation"]["reschedule_count"] == 1

    def test_two_payment_sources_are_rejected(self, client, db, user) -> None:
        reservation = make_reservation(db, user_id=user.id)

        response = client.post(
            f"{BASE}/{reservation.id}/reschedule/complete",
            json={
                "date": "2026-06-12",
                "start_time": "11:00",
                "payment_id": "ord_1",
                "payment_token": "tok_1",
            },
            headers=auth_headers(user),
        )

        assert response.status_code == 422

    def test_limit_reached(self, client, db, user) -> None:
        reservation = make_reservation(db, user_id=user.id, reschedule_count=1)

        response = client.post(
            f"{BASE}/{reservation.id}/reschedule",
            json={"date": "2026-06-09", "start_time": "11:00"},
            headers=auth_headers(user),
        )

        assert response.status_code == 422
        assert response.json()["code"] == "RESCHEDULE_LIMIT_REACHED"


class TestCancel:
    def test_owner_cancels_with_refund(self, client, db, user) -> None:
        reservation = make_reservation(db, user_id=user.id)

        response = client.post(
            f"{BASE}/{reservation.id}/cancel",
            json={"reason": "Cambio de planes"},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["refund_amount"] == 1200.0
        assert data["total_card_paid"] == 1500.0
        assert data["refund_status"] == "pending"
        assert data["reservation"]["status"] == "cancelled"

    def test_short_notice(self, client, db, user) -> None:
        reservation = make_reservation(db, user_id=user.id, date=THIS_FRIDAY)

        response = client.post(f"{BASE}/{reservation.id}/cancel", headers=auth_headers(user))

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "INSUFFICIENT_NOTICE"
        assert body["errors"]["remaining_business_days"] == 4


class TestAdminAndExtras:
    def test_manual_booking_requires_admin(self, client, user) -> None:
        body = {
            "email": "walkin@example.com",
            "name": "Walk In",
            "phone": "8119999999",
            "date": NEXT_MONDAY.isoformat(),
            "start_time": "12:00",
            "price": 1500,
            "payment_method": "efectivo",
        }

        assert client.post(f"{BASE}/admin/reservations", json=body).status_code == 401
        forbidden = client.post(
            f"{BASE}/admin/reservations", json=body, headers=auth_headers(user)
        )
        assert forbidden.status_code == 403
        assert forbidden.json()["code"] == "ADMIN_REQUIRED"

    def test_admin_manual_booking(self, client, admin_user) -> None:
        response = client.post(
            f"{BASE}/admin/reservations",
            json={
                "email": "walkin@example.com",
                "name": "Walk In",
                "phone": "8119999999",
                "date": NEXT_MONDAY.isoformat(),
                "start_time": "12:00",
                "price": 1500,
                "payment_method": "transferencia",
                "send_email": True,
            },
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 201
        assert response.json()["guest_token"]

    def test_loyalty_balance(self, client, db, user) -> None:
        add_points(db, user, 75)

        assert client.get(f"{BASE}/loyalty/balance").status_code == 401
        response = client.get(f"{BASE}/loyalty/balance", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["points"] == 75
        assert response.json()["level"] == "Inicial"

    def test_discount_code_validation(self, client, db) -> None:
        make_discount_code(db)

        ok = client.post(f"{BASE}/discount-codes/validate", json={"code": "verano10"})
        missing = client.post(f"{BASE}/discount-codes/validate", json={"code": "NOPE"})

        assert ok.status_code == 200
        assert ok.json()["discount_percentage"] == 10.0
        assert missing.status_code == 404


def test_health_and_metrics(client) -> None:
    assert client.get("/health").json()["status"] == "healthy"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "studio_booking" in metrics.text
