import threading
from datetime import datetime, timedelta, timezone

import pytest

from agendando.core.exceptions import (
    AlreadyCancelledException,
    ConflictException,
    InvalidInputException,
    NotFoundException,
)
from agendando.models import Booking, BookingStatus, Job, JobType
from agendando.services.availability.time_window import to_instant
from agendando.services.booking.booking_service import BookingService

from factories import (
    BUENOS_AIRES,
    connect_mercadopago,
    make_booking,
    make_event_type,
    make_host,
    upcoming_day,
)


@pytest.fixture
def host(db):
    return make_host(db)


@pytest.fixture
def event_type(db, host):
    return make_event_type(db, host, slug="intro", duration=30)


@pytest.fixture
def start():
    return to_instant(upcoming_day(), "09:00", BUENOS_AIRES)


def book(db, start, slug="intro", username="ana", email="guest@example.com", **overrides):
    params = dict(
        username=username,
        event_slug=slug,
        start_time=start,
        guest_name="Lucía Pérez",
        guest_email=email,
        guest_timezone=BUENOS_AIRES,
        notes="Looking forward",
    )
    params.update(overrides)
    return BookingService.create_booking(db, **params)


class TestCreateBooking:

    def test_free_event_is_confirmed(self, db, host, event_type, start):
        booking = book(db, start)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.start_time == start
        assert booking.end_time == start + timedelta(minutes=30)
        assert booking.host_id == host.id
        assert booking.guest_timezone == BUENOS_AIRES
        assert len(booking.cancellation_token) >= 32
        assert booking.payment_expires_at is None

    def test_confirmation_side_effects_are_queued(self, db, host, event_type, start):
        booking = book(db, start)

        types = {job.type for job in db.query(Job).filter_by(booking_id=booking.id)}
        assert JobType.BOOKING_CONFIRMATION_EMAIL.value in types
        # No calendar or zoom connected
        assert JobType.CREATE_CALENDAR_EVENT.value not in types
        assert JobType.CREATE_ZOOM_MEETING.value not in types

    def test_offset_start_time_is_stored_as_utc(self, db, host, event_type, start):
        local = start.astimezone(timezone(timedelta(hours=-3)))
        booking = book(db, local)

        assert booking.start_time == start
        assert booking.start_time.utcoffset() == timedelta(0)

    def test_naive_start_time_is_rejected(self, db, host, event_type, start):
        with pytest.raises(InvalidInputException):
            book(db, start.replace(tzinfo=None))

    def test_past_start_time_is_rejected(self, db, host, event_type):
        with pytest.raises(InvalidInputException):
            book(db, datetime.now(timezone.utc) - timedelta(hours=1))

    @pytest.mark.parametrize("overrides", [
        {"guest_email": "not-an-email"},
        {"guest_timezone": "Nowhere/Land"},
        {"guest_name": "   "},
    ])
    def test_invalid_guest_details(self, db, host, event_type, start, overrides):
        with pytest.raises(InvalidInputException):
            book(db, start, **overrides)
        assert db.query(Booking).count() == 0

    def test_unknown_host_or_event(self, db, host, event_type, start):
        with pytest.raises(NotFoundException):
            book(db, start, username="nobody")
        with pytest.raises(NotFoundException):
            book(db, start, slug="missing")

    def test_inactive_event_type_is_not_bookable(self, db, host, start):
        make_event_type(db, host, slug="retired", is_active=False)
        with pytest.raises(NotFoundException):
            book(db, start, slug="retired")

    def test_exact_double_booking_conflicts(self, db, host, event_type, start):
        book(db, start)
        with pytest.raises(ConflictException):
            book(db, start, email="other@example.com")
        assert db.query(Booking).count() == 1

    def test_partial_overlap_across_event_types_conflicts(self, db, host, event_type, start):
        make_event_type(db, host, slug="deep-dive", duration=60)
        book(db, start)

        with pytest.raises(ConflictException):
            book(db, start - timedelta(minutes=45), slug="deep-dive")

    def test_touching_bookings_are_allowed(self, db, host, event_type, start):
        book(db, start)
        second = book(db, start + timedelta(minutes=30), email="next@example.com")
        assert second.status == BookingStatus.CONFIRMED

    def test_cancelled_booking_frees_the_slot(self, db, host, event_type, start):
        make_booking(db, host, event_type, start, status=BookingStatus.CANCELLED)
        assert book(db, start).status == BookingStatus.CONFIRMED

    def test_paid_event_requires_payment_integration(self, db, host, start):
        make_event_type(db, host, slug="paid", price="1500.00", currency="ARS")

        with pytest.raises(InvalidInputException) as exc:
            book(db, start, slug="paid")
        assert exc.value.code == "payment_not_configured"

    def test_paid_event_is_held_pending_payment(self, db, host, start):
        make_event_type(db, host, slug="paid", price="1500.00", currency="ARS")
        connect_mercadopago(db, host)

        booking = book(db, start, slug="paid")

        assert booking.status == BookingStatus.PENDING_PAYMENT
        assert str(booking.payment_amount) == "1500.00"
        assert booking.payment_currency == "ARS"
        assert booking.payment_expires_at > datetime.now(timezone.utc) + timedelta(minutes=50)
        assert db.query(Job).filter_by(booking_id=booking.id).count() == 0

    def test_pending_payment_hold_blocks_the_slot(self, db, host, event_type, start):
        make_booking(db, host, event_type, start, status=BookingStatus.PENDING_PAYMENT)
        with pytest.raises(ConflictException):
            book(db, start)


def test_concurrent_bookings_for_one_slot(db, session_factory, host, event_type, start):
    db.commit()
    attempts = 6
    barrier = threading.Barrier(attempts)
    outcomes = []
    lock = threading.Lock()

    def attempt(index):
        session = session_factory()
        try:
            barrier.wait()
            book(session, start, email=f"guest{index}@example.com")
            result = "ok"
        except ConflictException:
            result = "conflict"
        except Exception as e:
            result = f"error: {e}"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(outcomes) == ["conflict"] * (attempts - 1) + ["ok"]
    assert db.query(Booking).filter(Booking.status == BookingStatus.CONFIRMED).count() == 1


class TestCancellation:

    def test_host_cancels_booking(self, db, host, event_type, start):
        booking = book(db, start)

        cancelled = BookingService.cancel_booking(db, host.id, booking.id, "Sick")

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancel_reason == "Sick"
        assert cancelled.cancelled_at is not None
        types = {job.type for job in db.query(Job).filter_by(booking_id=booking.id)}
        assert JobType.BOOKING_CANCELLATION_EMAIL.value in types

    def test_cancelled_is_terminal(self, db, host, event_type, start):
        booking = book(db, start)
        BookingService.cancel_booking(db, host.id, booking.id)

        with pytest.raises(AlreadyCancelledException):
            BookingService.cancel_booking(db, host.id, booking.id)
        with pytest.raises(AlreadyCancelledException):
            BookingService.cancel_by_token(db, booking.cancellation_token)

    def test_host_cannot_cancel_someone_elses_booking(self, db, host, event_type, start):
        booking = book(db, start)
        other = make_host(db, username="beto")

        with pytest.raises(NotFoundException):
            BookingService.cancel_booking(db, other.id, booking.id)

    def test_cancel_by_token(self, db, host, event_type, start):
        booking = book(db, start)

        cancelled = BookingService.cancel_by_token(db, booking.cancellation_token, None)

        assert cancelled.id == booking.id
        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancel_reason == "Cancelled by guest"

    def test_unknown_token(self, db, host):
        with pytest.raises(NotFoundException):
            BookingService.cancel_by_token(db, "does-not-exist")


class TestQueries:

    def test_filters(self, db, host, event_type):
        now = datetime.now(timezone.utc)
        upcoming = make_booking(db, host, event_type, now + timedelta(days=2))
        past = make_booking(db, host, event_type, now - timedelta(days=2))
        cancelled = make_booking(db, host, event_type, now + timedelta(days=3), status=BookingStatus.CANCELLED)

        def ids(filter):
            return [b.id for b in BookingService.list_bookings(db, host.id, filter)]

        assert ids("upcoming") == [upcoming.id]
        assert ids("past") == [past.id]
        assert ids("cancelled") == [cancelled.id]
        assert set(ids("all")) == {upcoming.id, past.id, cancelled.id}

    def test_invalid_filter(self, db, host):
        with pytest.raises(InvalidInputException):
            BookingService.list_bookings(db, host.id, "someday")

    def test_get_booking_is_scoped_to_host(self, db, host, event_type):
        booking = make_booking(db, host, event_type, datetime.now(timezone.utc) + timedelta(days=1))
        other = make_host(db, username="beto")

        assert BookingService.get_booking(db, host.id, booking.id).id == booking.id
        with pytest.raises(NotFoundException):
            BookingService.get_booking(db, other.id, booking.id)
        with pytest.raises(NotFoundException):
            BookingService.get_booking(db, host.id, "not-a-uuid")
