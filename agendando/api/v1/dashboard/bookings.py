# ============================================================================
# FILE: agendando/api/v1/dashboard/bookings.py
# Host booking endpoints (JWT) - thin HTTP layer
# ============================================================================
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from agendando.api.dependencies import get_current_host
from agendando.config.database import get_db
from agendando.models.host import Host
from agendando.schemas.booking import BookingOut, CancelRequest
from agendando.services.booking.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["dashboard-bookings"])


@router.get("", response_model=List[BookingOut])
async def list_bookings(
        filter: str = Query("upcoming", description="upcoming, past, cancelled or all"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return BookingService.list_bookings(db, current_host.id, filter)


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
        booking_id: str = Path(..., description="The booking ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return BookingService.get_booking(db, current_host.id, booking_id)


@router.patch("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
        booking_id: str = Path(..., description="The booking ID"),
        body: CancelRequest = None,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Cancel one of your bookings; the guest is notified by email"""
    reason = body.reason if body else None
    return BookingService.cancel_booking(db, current_host.id, booking_id, reason)
