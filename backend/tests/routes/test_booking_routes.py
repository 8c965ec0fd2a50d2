"""End-to-end flows through the v1 routers."""

from datetime import date

from trainbook.models.availability import TrainerAvailabilityStatus


def _create_booking(client, trainer, course, **overrides):
    payload = {
        "request_type": "INHOUSE",
        "requested_date": "2025-03-10",
        "end_date": "2025-03-12",
        "course_id": course.id,
        "trainer_id": trainer.id,
        "client_id": "client-01",
        "client_name": "Acme Corp",
    }
    payload.update(overrides)
    response = client.post("/api/v1/bookings", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestBookingLifecycle:
    def test_approve_then_confirm(self, client, trainer, course):
        booking = _create_booking(client, trainer, course)
        assert booking["status"] == "PENDING"

        approved = client.post(
            f"/api/v1/bookings/{booking['id']}/approve", headers={"X-User-Id": "admin-1"}
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"

        calendar = client.get(
            f"/api/v1/trainers/{trainer.id}/availability",
            params={"start_date": "2025-03-10", "end_date": "2025-03-12"},
        ).json()
        assert [row["status"] for row in calendar] == ["TENTATIVE"] * 3

        confirmed = client.post(
            f"/api/v1/bookings/{booking['id']}/confirm",
            json={
                "availability_ids": [row["id"] for row in calendar],
                "total_slots": 20,
                "registered_participants": 12,
            },
        )
        assert confirmed.status_code == 200, confirmed.text
        body = confirmed.json()
        assert body["booking"]["status"] == "CONFIRMED"
        assert body["event"]["max_packs"] == 20
        assert body["event"]["event_date"] == "2025-03-10"

        capacity = client.get(f"/api/v1/events/{body['event']['id']}/capacity").json()
        assert capacity == {"event_id": body["event"]["id"], "max_packs": 20, "remaining": 8}

    def test_confirm_with_too_many_participants(self, client, trainer, course, availability_factory):
        row = availability_factory(trainer, date(2025, 3, 10))
        booking = _create_booking(client, trainer, course, end_date=None)
        client.post(f"/api/v1/bookings/{booking['id']}/approve")

        response = client.post(
            f"/api/v1/bookings/{booking['id']}/confirm",
            json={"availability_ids": [row.id], "total_slots": 20, "registered_participants": 25},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "PARTICIPANTS_EXCEED_SLOTS"

    def test_confirm_booked_row_is_409(self, client, trainer, course, availability_factory):
        row = availability_factory(trainer, date(2025, 3, 20), TrainerAvailabilityStatus.BOOKED)
        booking = _create_booking(client, trainer, course, requested_date="2025-03-20", end_date=None)
        client.post(f"/api/v1/bookings/{booking['id']}/approve")

        response = client.post(
            f"/api/v1/bookings/{booking['id']}/confirm",
            json={"availability_ids": [row.id], "total_slots": 5, "registered_participants": 1},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "AVAILABILITY_UNAVAILABLE"

    def test_invalid_transition_is_409(self, client, trainer, course):
        booking = _create_booking(client, trainer, course)
        client.post(f"/api/v1/bookings/{booking['id']}/deny")

        response = client.put(
            f"/api/v1/bookings/{booking['id']}/status", json={"status": "CANCELLED"}
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_TRANSITION"

    def test_unknown_booking_is_404(self, client):
        response = client.post("/api/v1/bookings/01MISSING00000000000000000/approve")
        assert response.status_code == 404

    def test_extra_fields_rejected(self, client, trainer, course):
        response = client.post(
            "/api/v1/bookings",
            json={"trainer_id": trainer.id, "requested_date": "2025-03-10", "priority": "high"},
        )
        assert response.status_code == 422


class TestConflictRoutes:
    def test_detect_and_resolve(self, client, trainer, course):
        booking = _create_booking(client, trainer, course, end_date=None)
        client.post(f"/api/v1/bookings/{booking['id']}/approve")

        report = client.get(
            "/api/v1/bookings/conflicts/detect",
            params={"trainer_id": trainer.id, "start_date": "2025-03-10", "end_date": "2025-03-11"},
        )
        assert report.status_code == 200
        body = report.json()
        assert body["has_conflict"] is True
        assert [b["id"] for b in body["existing_bookings"]] == [booking["id"]]
        assert body["suggested_alternatives"][0]["start_date"] == "2025-03-17"

        resolved = client.post(
            "/api/v1/bookings/conflicts/resolve",
            json={"booking_id": booking["id"], "resolution": "reschedule", "new_date": "2025-03-17"},
        )
        assert resolved.status_code == 200
        assert resolved.json()["status"] == "TENTATIVE"
        assert resolved.json()["requested_date"] == "2025-03-17"

    def test_conflicting_bookings_listing(self, client, trainer, course):
        first = _create_booking(client, trainer, course, end_date=None, request_type="PUBLIC")
        second = _create_booking(client, trainer, course, end_date=None, request_type="PUBLIC")
        client.post(f"/api/v1/bookings/{first['id']}/approve")
        client.post(f"/api/v1/bookings/{second['id']}/approve")

        response = client.get(f"/api/v1/bookings/{first['id']}/conflicting")
        assert [b["id"] for b in response.json()] == [second["id"]]
