import hashlib
import hmac
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from agendando.config.settings import settings
from agendando.core.exceptions import NotFoundException, ServiceException
from agendando.models import Booking, BookingStatus, Job, JobType
from agendando.services.booking.booking_service import BookingService
from agendando.services.payment.mercadopago_service import MercadoPagoService
from agendando.webhooks.mercadopago_handler import get_mercadopago_service
from agendando.main import app

from factories import connect_mercadopago, make_booking, make_event_type, make_host


@pytest.fixture
def host(db):
    host = make_host(db)
    connect_mercadopago(db, host)
    return host


@pytest.fixture
def paid_event(db, host):
    return make_event_type(db, host, slug="paid", price="1500.00", currency="ARS")


@pytest.fixture
def held(db, host, paid_event):
    return make_booking(
        db, host, paid_event,
        datetime.now(timezone.utc) + timedelta(days=5),
        status=BookingStatus.PENDING_PAYMENT,
        payment_amount=paid_event.price,
        payment_currency="ARS",
        payment_status="pending",
        payment_expires_at=datetime.now(timezone.utc) + timedelta(minutes=60),
    )


def job_types(db, booking):
    return sorted(job.type for job in db.query(Job).filter(Job.booking_id == booking.id))


class TestConfirmPayment:

    def test_approved_payment_confirms_hold(self, db, held):
        booking = BookingService.confirm_payment(db, held.id, "987654", 1500)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_id == "987654"
        assert booking.payment_status == "approved"
        assert JobType.BOOKING_CONFIRMATION_EMAIL.value in job_types(db, booking)

    def test_amount_mismatch_leaves_hold_untouched(self, db, held):
        booking = BookingService.confirm_payment(db, held.id, "987654", "15.00")

        assert booking.status == BookingStatus.PENDING_PAYMENT
        assert job_types(db, booking) == []

    def test_confirming_twice_is_a_no_op(self, db, held):
        BookingService.confirm_payment(db, held.id, "987654", "1500.00")
        booking = BookingService.confirm_payment(db, held.id, "987654", "1500.00")

        assert booking.status == BookingStatus.CONFIRMED
        assert job_types(db, booking).count(JobType.BOOKING_CONFIRMATION_EMAIL.value) == 1

    def test_cancelled_hold_is_not_revived(self, db, held):
        BookingService.release_expired_holds(db, now=datetime.now(timezone.utc) + timedelta(hours=2))

        booking = BookingService.confirm_payment(db, held.id, "987654", "1500.00")
        assert booking.status == BookingStatus.CANCELLED

    def test_payment_for_another_hosts_booking(self, db, held):
        other = make_host(db, username="beto")
        with pytest.raises(NotFoundException):
            BookingService.confirm_payment(db, held.id, "987654", "1500.00", host_id=other.id)


class TestRejectAndExpire:

    def test_rejected_payment_releases_hold(self, db, held):
        booking = BookingService.reject_payment(db, held.id, "555", "rejected")

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancel_reason == "Payment rejected"
        assert booking.payment_status == "rejected"
        # The guest never had a confirmed booking
        assert JobType.BOOKING_CANCELLATION_EMAIL.value not in job_types(db, booking)

    def test_rejection_after_confirmation_is_ignored(self, db, held):
        BookingService.confirm_payment(db, held.id, "987654", "1500.00")

        booking = BookingService.reject_payment(db, held.id, "555", "cancelled")
        assert booking.status == BookingStatus.CONFIRMED

    def test_rejecting_cancelled_booking_returns_none(self, db, held):
        BookingService.reject_payment(db, held.id, "555", "rejected")
        assert BookingService.reject_payment(db, held.id, "555", "rejected") is None

    def test_expired_holds_are_released(self, db, host, paid_event, held):
        fresh = make_booking(
            db, host, paid_event,
            datetime.now(timezone.utc) + timedelta(days=6),
            status=BookingStatus.PENDING_PAYMENT,
            payment_expires_at=datetime.now(timezone.utc) + timedelta(hours=3),
        )

        released = BookingService.release_expired_holds(db, now=datetime.now(timezone.utc) + timedelta(hours=2))

        assert released == 1
        db.expire_all()
        assert db.get(Booking, held.id).status == BookingStatus.CANCELLED
        assert db.get(Booking, held.id).cancel_reason == "Payment expired"
        assert db.get(Booking, fresh.id).status == BookingStatus.PENDING_PAYMENT


class FakeMercadoPago(MercadoPagoService):
    """Answers MercadoPago API calls from memory"""

    def __init__(self, payments=None, fail_preference=False):
        self.payments = payments or {}
        self.fail_preference = fail_preference
        self.requested_tokens = []
        super().__init__(http_client=httpx.Client(transport=httpx.MockTransport(self._handle)))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requested_tokens.append(request.headers.get("Authorization"))
        if request.url.path == "/checkout/preferences":
            if self.fail_preference:
                return httpx.Response(500, json={"message": "boom"})
            return httpx.Response(201, json={"id": "pref-123", "init_point": "https://mp.test/checkout/pref-123"})
        if request.url.path.startswith("/v1/payments/"):
            payment_id = request.url.path.rsplit("/", 1)[-1]
            if payment_id not in self.payments:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=self.payments[payment_id])
        return httpx.Response(404)


class TestCheckout:

    def test_checkout_stores_preference(self, db, held):
        url = BookingService.start_checkout(db, held, FakeMercadoPago())

        assert url == "https://mp.test/checkout/pref-123"
        assert held.payment_reference == "pref-123"

    def test_failed_checkout_cancels_hold(self, db, held):
        with pytest.raises(ServiceException):
            BookingService.start_checkout(db, held, FakeMercadoPago(fail_preference=True))

        db.expire_all()
        booking = db.get(Booking, held.id)
        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancel_reason == "Payment setup failed"


class TestSignature:

    SECRET = "whsec-test"

    def sign(self, data_id, request_id, ts="1700000000"):
        manifest = f"id:{data_id};request-id:{request_id};ts:{ts};"
        digest = hmac.new(self.SECRET.encode(), manifest.encode(), hashlib.sha256).hexdigest()
        return f"ts={ts},v1={digest}"

    def test_valid_signature(self):
        header = self.sign("987654", "req-1")
        assert MercadoPagoService.verify_signature(header, "req-1", "987654", self.SECRET)

    def test_tampered_payment_id(self):
        header = self.sign("987654", "req-1")
        assert not MercadoPagoService.verify_signature(header, "req-1", "111111", self.SECRET)

    @pytest.mark.parametrize("header", [None, "", "ts=1700000000", "v1=abc", "garbage"])
    def test_malformed_header(self, header):
        assert not MercadoPagoService.verify_signature(header, "req-1", "987654", self.SECRET)

    def test_no_secret_skips_verification(self):
        assert MercadoPagoService.verify_signature(None, None, "987654", None)


class TestWebhook:

    @pytest.fixture
    def fake_mp(self):
        fake = FakeMercadoPago()
        app.dependency_overrides[get_mercadopago_service] = lambda: fake
        yield fake
        app.dependency_overrides.pop(get_mercadopago_service, None)

    def notify(self, client, host, payment_id, headers=None):
        return client.post(
            f"/webhooks/mercadopago?host_id={host.id}&data.id={payment_id}",
            json={"type": "payment", "action": "payment.updated", "data": {"id": payment_id}},
            headers=headers or {},
        )

    def test_approved_payment_confirms_booking(self, client, db, host, held, fake_mp):
        fake_mp.payments["987654"] = {
            "id": 987654, "status": "approved", "external_reference": str(held.id),
            "transaction_amount": 1500.0, "currency_id": "ARS",
        }
        db.commit()

        response = self.notify(client, host, "987654")

        assert response.status_code == 200
        assert fake_mp.requested_tokens == ["Bearer APP_USR-test-token"]
        db.expire_all()
        assert db.get(Booking, held.id).status == BookingStatus.CONFIRMED

    def test_rejected_payment_cancels_booking(self, client, db, host, held, fake_mp):
        fake_mp.payments["555"] = {"id": 555, "status": "rejected", "external_reference": str(held.id)}
        db.commit()

        assert self.notify(client, host, "555").status_code == 200
        db.expire_all()
        assert db.get(Booking, held.id).status == BookingStatus.CANCELLED

    def test_other_hosts_booking_is_not_touched(self, client, db, host, held, fake_mp):
        other = make_host(db, username="beto")
        connect_mercadopago(db, other)
        fake_mp.payments["987654"] = {
            "id": 987654, "status": "approved", "external_reference": str(held.id), "transaction_amount": 1500,
        }
        db.commit()

        assert self.notify(client, other, "987654").status_code == 200
        db.expire_all()
        assert db.get(Booking, held.id).status == BookingStatus.PENDING_PAYMENT

    def test_unknown_payment_still_acknowledged(self, client, db, host, fake_mp):
        db.commit()
        assert self.notify(client, host, "404404").status_code == 200

    def test_non_payment_topics_are_ignored(self, client, db, host, fake_mp):
        db.commit()
        response = client.post(f"/webhooks/mercadopago?host_id={host.id}", json={"type": "merchant_order"})

        assert response.json() == {"status": "ignored"}

    def test_bad_signature_is_rejected(self, client, db, host, held, fake_mp, monkeypatch):
        monkeypatch.setattr(settings, "MP_WEBHOOK_SECRET", "whsec-test")
        db.commit()

        response = self.notify(client, host, "987654", headers={"x-signature": "ts=1,v1=bad", "x-request-id": "r"})

        assert response.status_code == 401
