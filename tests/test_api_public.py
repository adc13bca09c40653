from datetime import timedelta

import pytest

from agendando.models import Booking, BookingStatus
from agendando.services.availability.time_window import day_of_week, to_instant

from factories import BUENOS_AIRES, add_weekly_rule, make_event_type, make_host, upcoming_day


@pytest.fixture
def day():
    return upcoming_day()


@pytest.fixture
def host(db, day):
    host = make_host(db, username="ana")
    add_weekly_rule(db, host, day_of_week(day), "09:00", "17:00")
    make_event_type(db, host, slug="intro", duration=30, title="Intro call")
    make_event_type(db, host, slug="hidden", is_active=False)
    return host


def booking_body(start, **overrides):
    body = {
        "username": "ana",
        "eventSlug": "intro",
        "startTime": start.isoformat().replace("+00:00", "Z"),
        "guestName": "Lucía Pérez",
        "guestEmail": "lucia@example.com",
        "guestTimezone": BUENOS_AIRES,
    }
    body.update(overrides)
    return body


class TestBookingPage:

    def test_profile_lists_active_event_types(self, client, host):
        response = client.get("/api/v1/public/ana")

        assert response.status_code == 200
        data = response.json()
        assert data["host"] == {"username": "ana", "name": "Ana Gómez", "timezone": BUENOS_AIRES}
        assert [e["slug"] for e in data["eventTypes"]] == ["intro"]
        assert data["eventTypes"][0]["durationMinutes"] == 30

    def test_unknown_host_is_404(self, client, host):
        response = client.get("/api/v1/public/nobody")

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_inactive_event_is_404(self, client, host):
        assert client.get("/api/v1/public/ana/hidden").status_code == 404

    def test_event_details(self, client, host):
        data = client.get("/api/v1/public/ana/intro").json()

        assert data["eventType"]["title"] == "Intro call"
        assert data["host"]["username"] == "ana"

    def test_slots_in_buenos_aires(self, client, host, day):
        response = client.get(
            "/api/v1/public/ana/intro/slots",
            params={"date": day.isoformat(), "timezone": BUENOS_AIRES},
        )

        assert response.status_code == 200
        slots = response.json()
        assert len(slots) == 16
        assert slots[0]["time"] == "09:00"
        first = to_instant(day, "09:00", BUENOS_AIRES)
        assert slots[0]["datetime"].startswith(first.strftime("%Y-%m-%dT12:00:00"))

    def test_slots_with_invalid_timezone(self, client, host, day):
        response = client.get(
            "/api/v1/public/ana/intro/slots",
            params={"date": day.isoformat(), "timezone": "Atlantis/Capital"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    def test_slots_with_malformed_date(self, client, host):
        response = client.get("/api/v1/public/ana/intro/slots", params={"date": "next tuesday"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    def test_available_days(self, client, host, day):
        month = day.strftime("%Y-%m")
        response = client.get(
            "/api/v1/public/ana/intro/available-days",
            params={"month": month, "timezone": BUENOS_AIRES},
        )

        assert response.status_code == 200
        assert day.isoformat() in response.json()

    def test_available_days_are_host_calendar_dates(self, client, host, day):
        url = "/api/v1/public/ana/intro/available-days"
        month = day.strftime("%Y-%m")

        without_tz = client.get(url, params={"month": month})
        far_east = client.get(url, params={"month": month, "timezone": "Pacific/Kiritimati"})
        bad_tz = client.get(url, params={"month": month, "timezone": "Not/AZone"})

        assert far_east.json() == without_tz.json()
        assert bad_tz.status_code == 400

    def test_join_waitlist(self, client, host):
        response = client.post(
            "/api/v1/public/ana/intro/waitlist",
            json={"guestName": "Pablo", "guestEmail": "pablo@example.com"},
        )

        assert response.status_code == 201
        assert response.json()["guestEmail"] == "pablo@example.com"


class TestBooking:

    def test_book_then_double_book(self, client, db, host, day):
        start = to_instant(day, "09:00", BUENOS_AIRES)

        first = client.post("/api/v1/bookings", json=booking_body(start))
        assert first.status_code == 201
        data = first.json()
        assert data["status"] == "CONFIRMED"
        assert data["cancellationToken"]
        assert data["eventType"]["slug"] == "intro"

        second = client.post("/api/v1/bookings", json=booking_body(start, guestEmail="otro@example.com"))
        assert second.status_code == 409
        assert second.json()["code"] == "conflict"

        # The taken slot disappears from the page
        slots = client.get(
            "/api/v1/public/ana/intro/slots",
            params={"date": day.isoformat(), "timezone": BUENOS_AIRES},
        ).json()
        assert len(slots) == 15
        assert slots[0]["time"] == "09:30"

    def test_start_time_without_offset_is_rejected(self, client, host, day):
        start = to_instant(day, "09:00", BUENOS_AIRES)
        body = booking_body(start, startTime=start.replace(tzinfo=None).isoformat())

        response = client.post("/api/v1/bookings", json=body)
        assert response.status_code == 400

    def test_missing_fields_are_400(self, client, host):
        response = client.post("/api/v1/bookings", json={"username": "ana"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "invalid_input"
        assert body["details"]

    def test_unknown_event_is_404(self, client, host, day):
        start = to_instant(day, "09:00", BUENOS_AIRES)
        response = client.post("/api/v1/bookings", json=booking_body(start, eventSlug="nope"))

        assert response.status_code == 404

    def test_cancel_by_token(self, client, db, host, day):
        start = to_instant(day, "10:00", BUENOS_AIRES)
        token = client.post("/api/v1/bookings", json=booking_body(start)).json()["cancellationToken"]

        cancelled = client.post(f"/api/v1/bookings/cancel/{token}", json={"reason": "Conflict at work"})
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "CANCELLED"
        assert cancelled.json()["cancelReason"] == "Conflict at work"
        assert "cancellationToken" not in cancelled.json()

        again = client.post(f"/api/v1/bookings/cancel/{token}")
        assert again.status_code == 400
        assert again.json()["code"] == "already_cancelled"

        # The slot can be booked again
        rebooked = client.post("/api/v1/bookings", json=booking_body(start + timedelta(0)))
        assert rebooked.status_code == 201

    def test_cancel_unknown_token(self, client, host):
        assert client.post("/api/v1/bookings/cancel/not-a-token").status_code == 404

    def test_paid_event_without_payments_configured(self, client, db, host, day):
        make_event_type(db, host, slug="paid", price="2000.00", currency="ARS")
        start = to_instant(day, "11:00", BUENOS_AIRES)

        response = client.post("/api/v1/bookings", json=booking_body(start, eventSlug="paid"))

        assert response.status_code == 400
        assert response.json()["code"] == "payment_not_configured"
        assert db.query(Booking).filter(Booking.status != BookingStatus.CANCELLED).count() == 0
