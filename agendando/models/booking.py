# ===== agendando/models/booking.py =====
from sqlalchemy import Column, String, Text, Numeric, ForeignKey, Uuid, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
import uuid
import enum

from agendando.models.base import Base, UTCDateTime, utcnow


class BookingStatus(str, enum.Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


# Statuses that occupy the host's calendar
ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.PENDING_PAYMENT)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False)
    event_type_id = Column(Uuid(as_uuid=True), ForeignKey("event_types.id"), nullable=False)

    # Guest info
    guest_name = Column(String(200), nullable=False)
    guest_email = Column(String(255), nullable=False)
    guest_timezone = Column(String(64), nullable=False)
    notes = Column(Text, nullable=True)

    # Half-open interval [start_time, end_time)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)

    status = Column(
        SQLEnum(BookingStatus, name="booking_status"),
        default=BookingStatus.CONFIRMED,
        nullable=False,
    )
    cancellation_token = Column(String(64), nullable=False, unique=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    # Payment
    payment_amount = Column(Numeric(12, 2), nullable=True)
    payment_currency = Column(String(3), nullable=True)
    payment_status = Column(String(50), nullable=True)
    payment_id = Column(String(100), nullable=True)
    payment_reference = Column(String(255), nullable=True)  # MercadoPago preference id
    payment_expires_at = Column(UTCDateTime, nullable=True)

    # Integrations
    external_event_id = Column(String(255), nullable=True)
    zoom_meeting_id = Column(String(100), nullable=True)
    meeting_url = Column(String(500), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    host = relationship("Host")
    event_type = relationship("EventType")

    __table_args__ = (
        Index("ix_bookings_host_start", "host_id", "start_time"),
        Index("ix_bookings_status_expires", "status", "payment_expires_at"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, status={self.status}, start={self.start_time})>"
