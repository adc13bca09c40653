# ============================================================================
# FILE: agendando/api/v1/public/bookings.py
# Guest booking and cancellation endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from agendando.config.database import get_db
from agendando.models import BookingStatus
from agendando.schemas.booking import (
    BookingCreate,
    BookingOut,
    CancelRequest,
    PaymentRequiredOut,
    PublicBookingOut,
)
from agendando.services.booking.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["public-bookings"])


# Sync handlers: booking creation blocks on row locks and retry backoff,
# so it runs in the threadpool rather than on the event loop.
@router.post("", status_code=status.HTTP_201_CREATED)
def create_booking(
        body: BookingCreate,
        db: Session = Depends(get_db)
):
    """
    Book a slot. Free events are confirmed immediately; paid events are held
    and the response carries the MercadoPago checkout URL instead.
    A 409 means the slot was taken meanwhile: re-fetch slots and pick again.
    """
    booking = BookingService.create_booking(
        db,
        username=body.username,
        event_slug=body.event_slug,
        start_time=body.start_time,
        guest_name=body.guest_name,
        guest_email=body.guest_email,
        guest_timezone=body.guest_timezone,
        notes=body.notes,
    )

    if booking.status == BookingStatus.PENDING_PAYMENT:
        payment_url = BookingService.start_checkout(db, booking)
        content = PaymentRequiredOut(payment_url=payment_url, booking_id=booking.id)
    else:
        content = PublicBookingOut.model_validate(booking)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=content.model_dump(mode="json", by_alias=True),
    )


@router.post("/cancel/{token}", response_model=BookingOut)
def cancel_booking(
        token: str = Path(..., description="Cancellation token from the confirmation email"),
        body: CancelRequest = None,
        db: Session = Depends(get_db)
):
    """Guest cancellation through the secret link"""
    reason = body.reason if body else None
    return BookingService.cancel_by_token(db, token, reason)
