# ===== agendando/services/booking/booking_service.py =====
"""
Booking creation, cancellation and payment transitions.

Creation serializes per host: the host row is locked (SELECT ... FOR UPDATE
on PostgreSQL; BEGIN IMMEDIATE on SQLite) before the overlap check, so the
check and the insert are atomic with respect to other bookings for that host.
"""
import random
import secrets
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Union
from uuid import UUID
import logging

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.core.exceptions import (
    AlreadyCancelledException,
    ConflictException,
    DomainException,
    InvalidInputException,
    NotFoundException,
    ServiceException,
)
from agendando.models import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    EventType,
    Host,
    IntegrationProvider,
)
from agendando.services.availability.time_window import get_zone, overlaps
from agendando.services.booking.booking_lifecycle import BookingLifecycle
from agendando.services.event_type.event_type_service import EVENT_NOT_FOUND
from agendando.services.integration.integration_service import IntegrationService
from agendando.services.payment.mercadopago_service import MercadoPagoService
from agendando.utils.validation import normalize_email

settings = get_settings()
logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "This time slot is no longer available. Please refresh the available slots and pick another time."
BOOKING_FILTERS = ("upcoming", "past", "cancelled", "all")
CENTS = Decimal("0.01")


def _is_serialization_failure(exc: OperationalError) -> bool:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in ("40001", "40P01"):
        return True
    message = str(exc).lower()
    return "deadlock detected" in message or "database is locked" in message


def _retry_delay(attempt: int) -> float:
    base = 0.05 * (2 ** (attempt - 1))
    return base + random.uniform(0, 0.05 * attempt)


def _to_amount(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(CENTS)
    except InvalidOperation:
        return None


class BookingService:

    # -- creation ----------------------------------------------------------

    @staticmethod
    def _insert_booking(
            db: Session,
            username: str,
            event_slug: str,
            start_time: datetime,
            guest: Dict[str, Optional[str]],
    ) -> Booking:
        """One attempt of the locked check-then-insert; leaves the transaction open"""
        host = db.query(Host).filter(
            Host.username == username,
            Host.is_active.is_(True),
        ).with_for_update().first()
        if not host:
            raise NotFoundException(EVENT_NOT_FOUND)

        event_type = db.query(EventType).filter_by(
            host_id=host.id, slug=event_slug, is_active=True
        ).first()
        if not event_type:
            raise NotFoundException(EVENT_NOT_FOUND)

        is_paid = event_type.is_paid
        if is_paid and not IntegrationService.is_connected(db, host.id, IntegrationProvider.MERCADOPAGO):
            raise InvalidInputException("Payment not configured for this event", code="payment_not_configured")

        end_time = start_time + timedelta(minutes=event_type.duration_minutes)

        candidates = db.query(Booking).filter(
            Booking.host_id == host.id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        ).all()
        if any(overlaps(start_time, end_time, b.start_time, b.end_time) for b in candidates):
            logger.info(f"Booking conflict for {username}/{event_slug} at {start_time.isoformat()}")
            raise ConflictException(
                CONFLICT_MESSAGE,
                details={"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
            )

        now = datetime.now(timezone.utc)
        booking = Booking(
            host_id=host.id,
            event_type_id=event_type.id,
            guest_name=guest["name"],
            guest_email=guest["email"],
            guest_timezone=guest["timezone"],
            notes=guest.get("notes"),
            start_time=start_time,
            end_time=end_time,
            status=BookingStatus.PENDING_PAYMENT if is_paid else BookingStatus.CONFIRMED,
            cancellation_token=secrets.token_urlsafe(32),
        )
        if is_paid:
            booking.payment_amount = event_type.price
            booking.payment_currency = event_type.currency
            booking.payment_status = "pending"
            booking.payment_expires_at = now + timedelta(minutes=settings.PAYMENT_HOLD_MINUTES)

        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def create_booking(
            db: Session,
            username: str,
            event_slug: str,
            start_time: datetime,
            guest_name: str,
            guest_email: str,
            guest_timezone: str,
            notes: Optional[str] = None,
    ) -> Booking:
        """
        Create a booking if [start, start + duration) is free for the host.

        Free events come back CONFIRMED with side effects queued. Paid events
        come back PENDING_PAYMENT; follow up with start_checkout().

        Raises NotFound, InvalidInput, Conflict or Service exceptions.
        """
        if start_time.tzinfo is None:
            raise InvalidInputException("startTime must include a timezone offset")
        start_time = start_time.astimezone(timezone.utc)
        if start_time <= datetime.now(timezone.utc):
            raise InvalidInputException("startTime must be in the future")

        guest_name = (guest_name or "").strip()
        if not guest_name:
            raise InvalidInputException("guestName is required")
        get_zone(guest_timezone)
        guest = {
            "name": guest_name,
            "email": normalize_email(guest_email),
            "timezone": guest_timezone,
            "notes": notes,
        }

        max_attempts = settings.BOOKING_MAX_ATTEMPTS
        attempt = 1
        while True:
            try:
                booking = BookingService._insert_booking(db, username, event_slug, start_time, guest)
                db.commit()
                break
            except DomainException:
                db.rollback()
                raise
            except OperationalError as exc:
                db.rollback()
                if attempt >= max_attempts or not _is_serialization_failure(exc):
                    logger.error(f"Booking insert failed after {attempt} attempts: {exc}")
                    raise ServiceException("Could not create booking, please try again") from exc
                delay = _retry_delay(attempt)
                logger.warning(f"Serialization failure creating booking (attempt {attempt}), retrying in {delay:.2f}s")
                time.sleep(delay)
                attempt += 1
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error(f"Booking insert failed: {exc}", exc_info=True)
                raise ServiceException("Could not create booking") from exc

        db.refresh(booking)
        logger.info(
            f"Created booking {booking.id} ({booking.status.value}) for {username}/{event_slug} "
            f"at {booking.start_time.isoformat()}"
        )

        if booking.status == BookingStatus.CONFIRMED:
            BookingLifecycle.on_confirmed(db, booking)
        return booking

    # -- payments ------------------------------------------------------------

    @staticmethod
    def start_checkout(db: Session, booking: Booking, mp_service: Optional[MercadoPagoService] = None) -> str:
        """Create the MercadoPago preference for a held booking; returns the redirect URL"""
        mp_service = mp_service or MercadoPagoService()
        try:
            access_token = mp_service.get_access_token(db, booking.host_id)
            preference = mp_service.create_preference(access_token, booking, booking.event_type)
            booking.payment_reference = preference["preference_id"]
            db.commit()
            return preference["init_point"]
        except Exception as e:
            db.rollback()
            logger.error(f"Checkout setup failed for booking {booking.id}: {e}", exc_info=True)
            try:
                BookingService._mark_cancelled(db, booking.id, "Payment setup failed")
            except AlreadyCancelledException:
                pass
            raise ServiceException("Payment setup failed") from e

    @staticmethod
    def confirm_payment(
            db: Session,
            booking_id: Union[UUID, str],
            payment_id: str,
            paid_amount,
            host_id: Optional[UUID] = None,
    ) -> Booking:
        """
        Approved payment webhook. Confirms a PENDING_PAYMENT booking; any other
        status, or an amount that differs from what was charged for, leaves the
        booking unchanged.
        """
        booking = BookingService._lock_booking(db, booking_id, host_id)

        if booking.status != BookingStatus.PENDING_PAYMENT:
            logger.info(f"Payment {payment_id} for booking {booking.id} ignored: status is {booking.status.value}")
            db.rollback()
            return booking

        expected, received = _to_amount(booking.payment_amount), _to_amount(paid_amount)
        if expected is not None and expected != received:
            logger.error(
                f"Payment amount mismatch for booking {booking.id}: expected {expected}, received {paid_amount}"
            )
            db.rollback()
            return booking

        booking.status = BookingStatus.CONFIRMED
        booking.payment_id = str(payment_id)
        booking.payment_status = "approved"
        db.commit()
        db.refresh(booking)

        logger.info(f"Payment {payment_id} approved, booking {booking.id} confirmed")
        BookingLifecycle.on_confirmed(db, booking)
        return booking

    @staticmethod
    def reject_payment(
            db: Session,
            booking_id: Union[UUID, str],
            payment_id: str,
            status: str,
            host_id: Optional[UUID] = None,
    ) -> Optional[Booking]:
        """Rejected/cancelled payment webhook: release the hold"""
        try:
            booking = BookingService._mark_cancelled(
                db,
                booking_id,
                f"Payment {status}",
                host_id=host_id,
                only_pending=True,
                payment_id=str(payment_id),
                payment_status=status,
            )
        except AlreadyCancelledException:
            logger.info(f"Payment {payment_id} {status}: booking {booking_id} already cancelled")
            return None

        if booking.status == BookingStatus.CANCELLED:
            BookingLifecycle.on_cancelled(db, booking, was_confirmed=False)
        return booking

    @staticmethod
    def release_expired_holds(db: Session, now: Optional[datetime] = None) -> int:
        """Cancel PENDING_PAYMENT bookings whose hold has lapsed"""
        now = now or datetime.now(timezone.utc)
        expired_ids = [
            row.id for row in db.query(Booking.id).filter(
                Booking.status == BookingStatus.PENDING_PAYMENT,
                Booking.payment_expires_at < now,
            ).all()
        ]
        db.commit()

        released = 0
        for booking_id in expired_ids:
            try:
                booking = BookingService._mark_cancelled(db, booking_id, "Payment expired", only_pending=True)
            except (AlreadyCancelledException, NotFoundException):
                continue
            if booking.status == BookingStatus.CANCELLED:
                BookingLifecycle.on_cancelled(db, booking, was_confirmed=False)
                released += 1

        if released:
            logger.info(f"Released {released} expired payment holds")
        return released

    # -- cancellation --------------------------------------------------------

    @staticmethod
    def _lock_booking(db: Session, booking_id: Union[UUID, str], host_id: Optional[UUID] = None) -> Booking:
        try:
            booking_id = UUID(str(booking_id))
        except ValueError:
            raise NotFoundException("Booking not found")

        query = db.query(Booking).filter(Booking.id == booking_id)
        if host_id is not None:
            query = query.filter(Booking.host_id == host_id)
        booking = query.with_for_update().first()
        if not booking:
            db.rollback()
            raise NotFoundException("Booking not found")
        return booking

    @staticmethod
    def _mark_cancelled(
            db: Session,
            booking_id: Union[UUID, str],
            reason: Optional[str],
            host_id: Optional[UUID] = None,
            only_pending: bool = False,
            **payment_fields,
    ) -> Booking:
        """
        Shared cancellation transition. CANCELLED is terminal. With
        only_pending, a booking that already got confirmed is left alone.
        """
        booking = BookingService._lock_booking(db, booking_id, host_id)

        if booking.status == BookingStatus.CANCELLED:
            db.rollback()
            raise AlreadyCancelledException("Booking is already cancelled")
        if only_pending and booking.status != BookingStatus.PENDING_PAYMENT:
            logger.warning(f"Not cancelling booking {booking.id}: status is {booking.status.value}")
            db.rollback()
            return booking

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now(timezone.utc)
        booking.cancel_reason = reason
        for field, value in payment_fields.items():
            setattr(booking, field, value)

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise ServiceException("Could not cancel booking") from exc

        db.refresh(booking)
        logger.info(f"Booking {booking.id} cancelled: {reason}")
        return booking

    @staticmethod
    def cancel_booking(db: Session, host_id: UUID, booking_id: Union[UUID, str], reason: Optional[str] = None) -> Booking:
        """Host-initiated cancellation"""
        booking = BookingService._mark_cancelled(db, booking_id, reason or "Cancelled by host", host_id=host_id)
        BookingLifecycle.on_cancelled(db, booking)
        return booking

    @staticmethod
    def cancel_by_token(db: Session, token: str, reason: Optional[str] = None) -> Booking:
        """Guest-initiated cancellation through the emailed secret link"""
        booking = db.query(Booking.id, Booking.status).filter(Booking.cancellation_token == token).first()
        if not booking:
            db.rollback()
            raise NotFoundException("Booking not found")

        was_confirmed = booking.status == BookingStatus.CONFIRMED
        cancelled = BookingService._mark_cancelled(db, booking.id, reason or "Cancelled by guest")
        BookingLifecycle.on_cancelled(db, cancelled, was_confirmed=was_confirmed)
        return cancelled

    # -- reads ---------------------------------------------------------------

    @staticmethod
    def list_bookings(
            db: Session,
            host_id: UUID,
            filter: str = "upcoming",
            now: Optional[datetime] = None,
    ) -> List[Booking]:
        if filter not in BOOKING_FILTERS:
            raise InvalidInputException(
                f"Invalid filter: {filter}", details={"allowed": list(BOOKING_FILTERS)}
            )

        now = now or datetime.now(timezone.utc)
        query = db.query(Booking).filter(Booking.host_id == host_id)

        if filter == "upcoming":
            query = query.filter(
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.start_time >= now,
            ).order_by(Booking.start_time.asc())
        elif filter == "past":
            query = query.filter(
                Booking.status != BookingStatus.CANCELLED,
                Booking.start_time < now,
            ).order_by(Booking.start_time.desc())
        elif filter == "cancelled":
            query = query.filter(
                Booking.status == BookingStatus.CANCELLED
            ).order_by(Booking.start_time.desc())
        else:
            query = query.order_by(Booking.start_time.desc())

        return query.all()

    @staticmethod
    def get_booking(db: Session, host_id: UUID, booking_id: Union[UUID, str]) -> Booking:
        try:
            booking_id = UUID(str(booking_id))
        except ValueError:
            raise NotFoundException("Booking not found")

        booking = db.query(Booking).filter_by(id=booking_id, host_id=host_id).first()
        if not booking:
            raise NotFoundException("Booking not found")
        return booking
