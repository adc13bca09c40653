# ============================================================================
# FILE: agendando/api/v1/public/booking_page.py
# Unauthenticated booking page endpoints - thin HTTP layer
# ============================================================================
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from agendando.config.database import get_db
from agendando.schemas.event_type import EventTypeOut
from agendando.schemas.public import (
    HostProfileOut,
    PublicEventOut,
    PublicProfileOut,
    SlotOut,
    WaitlistJoin,
)
from agendando.services.availability.availability_service import AvailabilityService
from agendando.services.availability.slot_service import SlotService
from agendando.services.availability.time_window import get_zone
from agendando.services.event_type.event_type_service import EventTypeService
from agendando.services.waitlist.waitlist_service import WaitlistService

router = APIRouter(prefix="/public", tags=["public-booking-page"])


@router.get("/{username}", response_model=PublicProfileOut)
async def get_profile(
        username: str = Path(..., description="The host's public username"),
        db: Session = Depends(get_db)
):
    """Host profile and the event types guests can book"""
    host = EventTypeService.get_public_host(db, username)
    return PublicProfileOut(
        host=HostProfileOut.model_validate(host),
        event_types=[EventTypeOut.model_validate(e) for e in EventTypeService.list_active(db, host.id)],
    )


@router.get("/{username}/{event_slug}", response_model=PublicEventOut)
async def get_event(
        username: str = Path(...),
        event_slug: str = Path(...),
        db: Session = Depends(get_db)
):
    host, event_type = EventTypeService.get_public_event(db, username, event_slug)
    return PublicEventOut(
        host=HostProfileOut.model_validate(host),
        event_type=EventTypeOut.model_validate(event_type),
    )


@router.get("/{username}/{event_slug}/available-days", response_model=List[str])
async def get_available_days(
        username: str = Path(...),
        event_slug: str = Path(...),
        month: str = Query(..., description="Month to inspect, YYYY-MM"),
        tz: Optional[str] = Query(
            None, alias="timezone",
            description="Guest timezone (IANA name). Validated only; days are host-calendar dates",
        ),
        db: Session = Depends(get_db)
):
    """
    Days of the month (host calendar) with at least one bookable window.
    Does not look at existing bookings.

    `timezone` is accepted so clients can send the same query string as
    for /slots; an unknown zone is still a 400. Slots for a picked day are
    labelled in the guest timezone by /slots.
    """
    if tz:
        get_zone(tz)
    host, event_type = EventTypeService.get_public_event(db, username, event_slug)
    config = AvailabilityService.get_or_create_config(db, host.id)
    return SlotService.get_available_days(db, host, event_type, config, month)


@router.get("/{username}/{event_slug}/slots", response_model=List[SlotOut])
async def get_slots(
        username: str = Path(...),
        event_slug: str = Path(...),
        day: date = Query(..., alias="date", description="Host calendar date, YYYY-MM-DD"),
        tz: Optional[str] = Query(None, alias="timezone", description="Guest timezone (IANA name)"),
        db: Session = Depends(get_db)
):
    """Bookable start times for one day, labelled in the guest's timezone"""
    host, event_type = EventTypeService.get_public_event(db, username, event_slug)
    config = AvailabilityService.get_or_create_config(db, host.id)
    return SlotService.generate_slots(db, host, event_type, config, day, tz or host.timezone)


@router.post("/{username}/{event_slug}/waitlist", status_code=status.HTTP_201_CREATED)
async def join_waitlist(
        body: WaitlistJoin,
        username: str = Path(...),
        event_slug: str = Path(...),
        db: Session = Depends(get_db)
):
    """Ask to be emailed when a booking for this event type is cancelled"""
    _, event_type = EventTypeService.get_public_event(db, username, event_slug)
    entry = WaitlistService.join(db, event_type, body.guest_name.strip(), body.guest_email)
    return {"status": "joined", "guestEmail": entry.guest_email}
