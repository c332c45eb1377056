# backend/tests/routes/test_booking_routes.py
"""
HTTP surface of the booking lifecycle, including the problem-JSON error
envelope.
"""

from fitbook.models.notification import Notification

BOOKINGS = "/api/v1/bookings"


def booking_payload(trainer, day, start="10:00:00", end="11:00:00", **extra):
    payload = {
        "trainer_id": trainer.id,
        "start_time": f"{day.isoformat()}T{start}",
        "end_time": f"{day.isoformat()}T{end}",
        "title": "Personal training",
    }
    payload.update(extra)
    return payload


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get(BOOKINGS)

        assert response.status_code == 401
        body = response.json()
        assert body["status"] == 401
        assert body["title"] == "Unauthorized"
        assert body["instance"] == BOOKINGS

    def test_garbage_token(self, client):
        response = client.get(BOOKINGS, headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_inactive_user(self, client, db, client_user, client_headers):
        client_user.is_active = False
        db.commit()

        assert client.get(BOOKINGS, headers=client_headers).status_code == 401


class TestCreateBooking:
    def test_create_pending_booking(self, client, client_headers, trainer, monday_rule, monday):
        response = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["version"] == 1
        assert body["start_time"].startswith(f"{monday.isoformat()}T10:00:00")

    def test_outside_availability_is_422(
        self, client, client_headers, trainer, monday_rule, monday
    ):
        response = client.post(
            BOOKINGS,
            json=booking_payload(trainer, monday, "11:30:00", "12:30:00"),
            headers=client_headers,
        )

        assert response.status_code == 422
        assert response.json()["code"] == "OUTSIDE_AVAILABILITY"

    def test_overlap_is_409(
        self, client, client_headers, second_client_headers, trainer, monday_rule, monday
    ):
        first = client.post(BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers)

        response = client.post(
            BOOKINGS,
            json=booking_payload(trainer, monday, "10:30:00", "11:30:00"),
            headers=second_client_headers,
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "BOOKING_OVERLAP"
        assert body["errors"]["conflicting_booking_ids"] == [first.json()["id"]]

    def test_end_required_without_service(self, client, client_headers, trainer, monday):
        payload = booking_payload(trainer, monday)
        del payload["end_time"]

        response = client.post(BOOKINGS, json=payload, headers=client_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_unknown_fields_rejected(self, client, client_headers, trainer, monday):
        payload = booking_payload(trainer, monday, status="confirmed")

        response = client.post(BOOKINGS, json=payload, headers=client_headers)
        assert response.status_code == 422

    def test_trainers_cannot_book(self, client, trainer_headers, trainer, monday_rule, monday):
        response = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=trainer_headers
        )
        assert response.status_code == 403

    def test_book_by_service(
        self, client, client_headers, trainer, trainer_service_row, monday_rule, monday
    ):
        payload = {
            "trainer_id": trainer.id,
            "start_time": f"{monday.isoformat()}T09:00:00",
            "service_id": trainer_service_row.id,
        }

        response = client.post(BOOKINGS, json=payload, headers=client_headers)

        assert response.status_code == 201
        assert response.json()["title"] == "Strength Session"
        assert response.json()["end_time"].startswith(f"{monday.isoformat()}T10:00:00")


class TestBookingLifecycle:
    def test_confirm_then_cancel(
        self, client, db, client_headers, trainer_headers, trainer, client_user, monday_rule, monday
    ):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()

        confirmed = client.post(
            f"{BOOKINGS}/{created['id']}/confirm",
            json={"expected_version": 1},
            headers=trainer_headers,
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"
        assert confirmed.json()["version"] == 2

        cancelled = client.post(
            f"{BOOKINGS}/{created['id']}/cancel",
            json={"reason": "  schedule conflict  "},
            headers=client_headers,
        )
        assert cancelled.status_code == 200
        body = cancelled.json()
        assert body["status"] == "cancelled"
        assert body["cancellation_reason"] == "schedule conflict"
        assert body["cancelled_by_id"] == client_user.id

        notifications = db.query(Notification).filter_by(reference_id=created["id"]).all()
        assert [(n.user_id, n.type) for n in notifications] == [(trainer.id, "booking_cancelled")]

    def test_reject_with_reason(
        self, client, client_headers, trainer_headers, trainer, monday_rule, monday
    ):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()

        response = client.post(
            f"{BOOKINGS}/{created['id']}/reject",
            json={"reason": "Fully booked"},
            headers=trainer_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["cancellation_reason"] == "Fully booked"

    def test_stale_version_is_409(
        self, client, client_headers, trainer_headers, trainer, monday_rule, monday
    ):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()
        client.post(f"{BOOKINGS}/{created['id']}/confirm", headers=trainer_headers)

        response = client.post(
            f"{BOOKINGS}/{created['id']}/cancel",
            json={"expected_version": 1},
            headers=trainer_headers,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONCURRENT_MODIFICATION"

    def test_illegal_transition_is_422(
        self, client, client_headers, trainer_headers, trainer, monday_rule, monday
    ):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()
        client.post(f"{BOOKINGS}/{created['id']}/cancel", headers=client_headers)

        response = client.post(f"{BOOKINGS}/{created['id']}/confirm", headers=trainer_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_STATE_TRANSITION"

    def test_client_cannot_confirm(self, client, client_headers, trainer, monday_rule, monday):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()

        response = client.post(f"{BOOKINGS}/{created['id']}/confirm", headers=client_headers)
        assert response.status_code == 403


class TestReadBookings:
    def test_get_and_list(
        self, client, client_headers, trainer_headers, trainer, monday_rule, monday
    ):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()

        assert client.get(f"{BOOKINGS}/{created['id']}", headers=client_headers).status_code == 200

        as_trainer = client.get(BOOKINGS, params={"role": "trainer"}, headers=trainer_headers)
        assert as_trainer.json()["total"] == 1
        as_client = client.get(BOOKINGS, params={"role": "trainer"}, headers=client_headers)
        assert as_client.json()["total"] == 0

    def test_outsider_gets_404(
        self, client, client_headers, second_client_headers, trainer, monday_rule, monday
    ):
        created = client.post(
            BOOKINGS, json=booking_payload(trainer, monday), headers=client_headers
        ).json()

        response = client.get(f"{BOOKINGS}/{created['id']}", headers=second_client_headers)

        assert response.status_code == 404
        assert response.json()["title"] == "Not Found"

    def test_malformed_id_is_422(self, client, client_headers):
        response = client.get(f"{BOOKINGS}/not-a-ulid", headers=client_headers)
        assert response.status_code == 422

    def test_unknown_role_filter_is_422(self, client, client_headers):
        response = client.get(BOOKINGS, params={"role": "admin"}, headers=client_headers)
        assert response.status_code == 422

    def test_unknown_status_filter_is_400(self, client, client_headers):
        response = client.get(BOOKINGS, params={"status": "archived"}, headers=client_headers)
        assert response.status_code == 400
