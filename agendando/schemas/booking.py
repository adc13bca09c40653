# ===== agendando/schemas/booking.py =====
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from agendando.models.booking import BookingStatus
from agendando.schemas.base import CamelModel


class BookingCreate(CamelModel):
    username: str = Field(..., min_length=1)
    event_slug: str = Field(..., min_length=1)
    start_time: datetime
    guest_name: str = Field(..., min_length=1, max_length=200)
    guest_email: str = Field(..., min_length=3, max_length=255)
    guest_timezone: str = Field(..., min_length=1, max_length=64)
    notes: Optional[str] = Field(None, max_length=2000)


class CancelRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingEventTypeOut(CamelModel):
    id: UUID
    title: str
    slug: str
    duration_minutes: int
    location: Optional[str] = None


class BookingOut(CamelModel):
    id: UUID
    event_type_id: UUID
    guest_name: str
    guest_email: str
    guest_timezone: str
    notes: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    payment_amount: Optional[Decimal] = None
    payment_currency: Optional[str] = None
    payment_status: Optional[str] = None
    meeting_url: Optional[str] = None
    created_at: datetime
    event_type: Optional[BookingEventTypeOut] = None


class PublicBookingOut(BookingOut):
    """Returned to the guest who made the booking; carries the cancellation secret"""
    cancellation_token: str


class PaymentRequiredOut(CamelModel):
    requires_payment: bool = True
    payment_url: str
    booking_id: UUID
